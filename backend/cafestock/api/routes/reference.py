"""Reference data routes: categories and units."""

from typing import List

from fastapi import APIRouter, Request

from cafestock.core.rate_limit import limiter
from cafestock.core.rbac import CurrentUser
from cafestock.db.session import DbSession
from cafestock.schemas.reference import CategoryResponse, UnitResponse
from cafestock.services.reference_service import list_categories, list_units

router = APIRouter()


@router.get("/categories", response_model=List[CategoryResponse])
@limiter.limit("60/minute")
def get_categories(request: Request, db: DbSession, current_user: CurrentUser):
    return list_categories(db)


@router.get("/units", response_model=List[UnitResponse])
@limiter.limit("60/minute")
def get_units(request: Request, db: DbSession, current_user: CurrentUser):
    return list_units(db)
