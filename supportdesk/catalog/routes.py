# supportdesk/catalog/routes.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from supportdesk.catalog import services as catalog_service
from supportdesk.catalog.schemas import (
    CategoryCreate,
    CategoryOut,
    StudioCreate,
    StudioOut,
    SubcategoryCreate,
    SubcategoryOut,
)
from supportdesk.core.database import get_db
from supportdesk.core.deps import get_current_user_id

router = APIRouter(tags=["Catalog"])


@router.get("/studios", response_model=list[StudioOut])
def list_studios(db: Session = Depends(get_db)):
    return catalog_service.list_studios(db)


@router.post("/studios", response_model=StudioOut, status_code=201)
def create_studio(
    studio: StudioCreate,
    db: Session = Depends(get_db),
    _user_id: str = Depends(get_current_user_id),
):
    return catalog_service.create_studio(db, studio)


@router.get("/categories", response_model=list[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return catalog_service.list_categories(db, active_only=True)


@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(
    category: CategoryCreate,
    db: Session = Depends(get_db),
    _user_id: str = Depends(get_current_user_id),
):
    return catalog_service.create_category(db, category)


@router.get("/subcategories", response_model=list[SubcategoryOut])
def list_subcategories(
    category_id: str | None = Query(default=None, alias="categoryId"),
    db: Session = Depends(get_db),
):
    return catalog_service.list_subcategories(db, category_id)


@router.post("/subcategories", response_model=SubcategoryOut, status_code=201)
def create_subcategory(
    subcategory: SubcategoryCreate,
    db: Session = Depends(get_db),
    _user_id: str = Depends(get_current_user_id),
):
    return catalog_service.create_subcategory(db, subcategory)
