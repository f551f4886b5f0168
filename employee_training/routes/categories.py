"""Training categories the L&D teams file their events under."""
from fastapi import APIRouter, Depends, HTTPException

from employee_training.core.dependencies import get_category_store, get_current_user
from employee_training.models import Category, CategoryPayload
from employee_training.storage.category_store import SqlCategoryStore

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("/", response_model=list[Category])
async def list_categories(categories: SqlCategoryStore = Depends(get_category_store)):
    """All categories, sorted by name."""
    return await categories.get_all()


@router.post("/", response_model=Category)
async def create_category(
    payload: CategoryPayload,
    user_id: str = Depends(get_current_user),
    categories: SqlCategoryStore = Depends(get_category_store),
):
    return await categories.create(payload, user_id)


@router.patch("/", response_model=Category)
async def update_category(
    payload: CategoryPayload,
    user_id: str = Depends(get_current_user),
    categories: SqlCategoryStore = Depends(get_category_store),
):
    """Rename or re-describe a category."""
    if not payload.category_id:
        raise HTTPException(status_code=400, detail="category_id is required")
    category = await categories.update(payload, user_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return category
