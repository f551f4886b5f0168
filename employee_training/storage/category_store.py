"""SQL-backed store for training categories."""
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from employee_training.models import Category, CategoryPayload

logger = logging.getLogger(__name__)


class SqlCategoryStore:
    """Categories keyed by their generated id."""

    def __init__(self, engine: Engine, clock: Callable[[], datetime] | None = None):
        self.engine = engine
        self.clock = clock or (lambda: datetime.now(UTC))

    async def get_all(self) -> list[Category]:
        """All categories, sorted by name."""
        with Session(self.engine) as session:
            return list(session.exec(select(Category).order_by(col(Category.name))).all())

    async def get(self, category_id: str) -> Category | None:
        with Session(self.engine) as session:
            return session.get(Category, category_id)

    async def get_names(self, category_ids: Iterable[str]) -> dict[str, str]:
        """Map each known category id to its name; unknown ids are left out."""
        ids = {i for i in category_ids if i}
        if not ids:
            return {}
        with Session(self.engine) as session:
            categories = session.exec(select(Category).where(col(Category.category_id).in_(ids))).all()
            return {category.category_id: category.name for category in categories}

    async def create(self, payload: CategoryPayload, user_id: str) -> Category:
        now = self.clock()
        category = Category(
            category_id=str(uuid4()),
            name=payload.name,
            description=payload.description,
            created_by=user_id,
            created_on=now,
            updated_by=user_id,
            updated_on=now,
        )
        with Session(self.engine) as session:
            session.add(category)
            session.commit()
            session.refresh(category)

        logger.info(f"Created category {category.category_id} ({category.name})")
        return category

    async def update(self, payload: CategoryPayload, user_id: str) -> Category | None:
        """Rename or re-describe a category. Returns None if it does not exist."""
        if not payload.category_id:
            return None

        with Session(self.engine) as session:
            category = session.get(Category, payload.category_id)
            if category is None:
                return None
            category.name = payload.name
            category.description = payload.description
            category.updated_by = user_id
            category.updated_on = self.clock()
            session.add(category)
            session.commit()
            session.refresh(category)

        logger.info(f"Updated category {category.category_id}")
        return category
