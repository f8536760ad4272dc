# supportdesk/catalog/services.py
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from supportdesk.catalog.models import Category, Studio, Subcategory
from supportdesk.catalog.schemas import CategoryCreate, StudioCreate, SubcategoryCreate
from supportdesk.core.errors import ConfigurationError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fallback:
    studio_id: str
    category_id: str


def list_studios(db: Session, active_only: bool = False) -> list[Studio]:
    query = db.query(Studio)
    if active_only:
        query = query.filter(Studio.is_active.is_(True))
    return query.order_by(Studio.created_at, Studio.id).all()


def create_studio(db: Session, payload: StudioCreate) -> Studio:
    studio = Studio(**payload.model_dump())
    db.add(studio)
    db.commit()
    db.refresh(studio)
    return studio


def list_categories(db: Session, active_only: bool = False) -> list[Category]:
    query = db.query(Category)
    if active_only:
        query = query.filter(Category.is_active.is_(True))
    return query.order_by(Category.sort_order, Category.created_at, Category.id).all()


def create_category(db: Session, payload: CategoryCreate) -> Category:
    category = Category(**payload.model_dump(mode="json"))
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def list_subcategories(db: Session, category_id: str | None = None) -> list[Subcategory]:
    query = db.query(Subcategory).filter(Subcategory.is_active.is_(True))
    if category_id:
        query = query.filter(Subcategory.category_id == category_id)
    return query.order_by(Subcategory.sort_order, Subcategory.created_at).all()


def create_subcategory(db: Session, payload: SubcategoryCreate) -> Subcategory:
    if db.get(Category, payload.category_id) is None:
        raise NotFoundError("Category not found")
    subcategory = Subcategory(**payload.model_dump(mode="json"))
    db.add(subcategory)
    db.commit()
    db.refresh(subcategory)
    return subcategory


def get_studio(db: Session, studio_id: str) -> Studio | None:
    return db.get(Studio, studio_id)


def get_category(db: Session, category_id: str | None) -> Category | None:
    if not category_id:
        return None
    return db.get(Category, category_id)


def get_subcategory(db: Session, subcategory_id: str | None) -> Subcategory | None:
    if not subcategory_id:
        return None
    return db.get(Subcategory, subcategory_id)


def resolve_fallback(db: Session) -> Fallback:
    """Pick the earliest-created active studio and category.

    Ties on ``created_at`` fall back to the primary key so the choice is
    stable across calls.
    """
    studio = (
        db.query(Studio)
        .filter(Studio.is_active.is_(True))
        .order_by(Studio.created_at, Studio.id)
        .first()
    )
    category = (
        db.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.created_at, Category.id)
        .first()
    )
    if studio is None or category is None:
        logger.error(
            "Fallback resolution failed: studio=%s category=%s",
            studio is not None,
            category is not None,
        )
        raise ConfigurationError("No active studio or category available for new tickets")
    return Fallback(studio_id=studio.id, category_id=category.id)


def resolve_placement(
    db: Session,
    studio_id: str | None,
    category_id: str | None,
    subcategory_id: str | None = None,
    fallback: Fallback | None = None,
) -> tuple[str, str]:
    """Fill a missing studio/category and check the result is consistent.

    A subcategory given without a category brings its own category along;
    anything still missing comes from the fallback. The subcategory must
    belong to the final category.
    """
    subcategory = get_subcategory(db, subcategory_id)
    if subcategory_id and subcategory is None:
        raise ConfigurationError(f"Subcategory {subcategory_id} does not exist")
    if subcategory is not None and not category_id:
        category_id = subcategory.category_id
    if not studio_id or not category_id:
        fallback = fallback or resolve_fallback(db)
        studio_id = studio_id or fallback.studio_id
        category_id = category_id or fallback.category_id
    if get_studio(db, studio_id) is None:
        raise ConfigurationError(f"Studio {studio_id} does not exist")
    if get_category(db, category_id) is None:
        raise ConfigurationError(f"Category {category_id} does not exist")
    if subcategory is not None and subcategory.category_id != category_id:
        raise ConfigurationError(
            f"Subcategory {subcategory_id} does not belong to category {category_id}"
        )
    return studio_id, category_id
