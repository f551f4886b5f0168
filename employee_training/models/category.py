"""Training categories managed by the L&D teams.

Events reference a category by id; the name shown to employees is looked up
from this table when cards, reminders and exports are built.
"""

from datetime import UTC, datetime

from pydantic import field_validator
from sqlmodel import Field, SQLModel

CATEGORY_NAME_MAX_LENGTH = 100
CATEGORY_DESCRIPTION_MAX_LENGTH = 300


class Category(SQLModel, table=True):
    """A training category.

    Attributes:
        category_id: Generated identifier referenced by events.
        name: Display name shown on cards and in exports.
        description: Short description shown in the category picker.
    """
    category_id: str = Field(primary_key=True)
    name: str = Field(index=True)
    description: str = ""
    created_by: str | None = None
    created_on: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_by: str | None = None
    updated_on: datetime = Field(default_factory=lambda: datetime.now(UTC))


class CategoryPayload(SQLModel):
    """Name and description of a category as submitted by the L&D team."""
    category_id: str | None = None
    name: str = Field(min_length=1, max_length=CATEGORY_NAME_MAX_LENGTH)
    description: str = Field(default="", max_length=CATEGORY_DESCRIPTION_MAX_LENGTH)

    @field_validator("name", "description", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value
