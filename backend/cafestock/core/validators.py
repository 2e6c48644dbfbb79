"""Reusable parameter validators and name normalisation."""

from typing import Annotated

from fastapi import Path
from sqlalchemy import func

# Positive integer ID validator for path parameters
PositiveIntId = Annotated[int, Path(gt=0, description="Resource ID (must be positive)")]


def normalize_name(name: str) -> str:
    """Key used for uniqueness among active rows: trimmed and lower-cased."""
    return name.strip().lower()


def normalized_column(column):
    """SQL expression matching ``normalize_name`` for a name column."""
    return func.lower(func.trim(column))
