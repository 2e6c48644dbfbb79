"""Reference data: item categories and units of measure."""

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cafestock.db.session import atomic
from cafestock.models.reference import Category, Unit

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    "Coffee",
    "Dairy",
    "Syrups & Sauces",
    "Tea",
    "Bakery",
    "Packaging",
    "Cleaning Supplies",
]

DEFAULT_UNITS = ["kg", "g", "L", "ml", "pcs", "bottles", "packs", "boxes"]


def seed_reference_data(db: Session) -> dict:
    """Insert default categories and units into empty tables.

    Safe to call on every startup; populated tables are left alone.
    """
    created = {"categories": 0, "units": 0}
    with atomic(db):
        if not db.scalar(select(func.count(Category.id))):
            db.add_all(Category(name=name) for name in DEFAULT_CATEGORIES)
            created["categories"] = len(DEFAULT_CATEGORIES)
        if not db.scalar(select(func.count(Unit.id))):
            db.add_all(Unit(name=name) for name in DEFAULT_UNITS)
            created["units"] = len(DEFAULT_UNITS)

    if created["categories"] or created["units"]:
        logger.info(f"Seeded reference data: {created}")
    return created


def list_categories(db: Session) -> List[Category]:
    return list(db.scalars(select(Category).order_by(Category.name)))


def list_units(db: Session) -> List[Unit]:
    return list(db.scalars(select(Unit).order_by(Unit.name)))
