"""Recipe routes."""

from typing import List

from fastapi import APIRouter, Request, status

from cafestock.core.rate_limit import limiter
from cafestock.core.rbac import CurrentUser, RequireManager
from cafestock.core.validators import PositiveIntId
from cafestock.db.session import DbSession
from cafestock.schemas.archive import ArchivedEntry, CleanupResponse, MessageResponse
from cafestock.schemas.recipe import RecipeCreate, RecipeResponse, RecipeUpdate
from cafestock.services.lifecycle import EntityKind, LifecycleManager
from cafestock.services.recipe_service import RecipeService

router = APIRouter()


def _ingredients(body: RecipeCreate) -> list:
    return [line.model_dump() for line in body.ingredients]


@router.get("/", response_model=List[RecipeResponse])
@limiter.limit("60/minute")
def list_recipes(request: Request, db: DbSession, current_user: CurrentUser):
    """List active recipes with their ingredients."""
    return [RecipeResponse.from_recipe(r) for r in RecipeService(db).list_recipes()]


@router.get("/archived", response_model=List[ArchivedEntry])
@limiter.limit("30/minute")
def list_archived_recipes(request: Request, db: DbSession, current_user: RequireManager):
    return [
        ArchivedEntry(id=recipe.id, name=recipe.name, deleted_at=recipe.deleted_at, days_until_purge=days)
        for recipe, days in LifecycleManager(db).list_archived(EntityKind.RECIPE, current_user)
    ]


@router.post("/cleanup-archived", response_model=CleanupResponse)
@limiter.limit("10/minute")
def cleanup_archived_recipes(request: Request, db: DbSession, current_user: RequireManager):
    result = LifecycleManager(db).sweep_expired(EntityKind.RECIPE, current_user)
    return CleanupResponse(
        message=f"Permanently deleted {result.count} expired recipe(s)",
        count=result.count,
        failed=result.failed,
    )


@router.post("/", response_model=RecipeResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_recipe(request: Request, body: RecipeCreate, db: DbSession, current_user: RequireManager):
    recipe = RecipeService(db).create_recipe(body.name, _ingredients(body), current_user)
    return RecipeResponse.from_recipe(recipe)


@router.get("/{recipe_id}", response_model=RecipeResponse)
@limiter.limit("60/minute")
def get_recipe(request: Request, recipe_id: PositiveIntId, db: DbSession, current_user: CurrentUser):
    return RecipeResponse.from_recipe(RecipeService(db).get_recipe(recipe_id))


@router.put("/{recipe_id}", response_model=RecipeResponse)
@limiter.limit("30/minute")
def update_recipe(
    request: Request, recipe_id: PositiveIntId, body: RecipeUpdate, db: DbSession, current_user: RequireManager
):
    """Rename a recipe and replace its ingredient list."""
    recipe = RecipeService(db).update_recipe(recipe_id, body.name, _ingredients(body), current_user)
    return RecipeResponse.from_recipe(recipe)


@router.delete("/{recipe_id}", response_model=MessageResponse)
@limiter.limit("30/minute")
def archive_recipe(request: Request, recipe_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    RecipeService(db).archive_recipe(recipe_id, current_user)
    return {"message": "Recipe archived"}


@router.post("/{recipe_id}/restore", response_model=MessageResponse)
@limiter.limit("30/minute")
def restore_recipe(request: Request, recipe_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    RecipeService(db).restore_recipe(recipe_id, current_user)
    return {"message": "Recipe restored"}


@router.delete("/{recipe_id}/permanent", response_model=MessageResponse)
@limiter.limit("30/minute")
def purge_recipe(request: Request, recipe_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    RecipeService(db).purge_recipe(recipe_id, current_user)
    return {"message": "Recipe permanently deleted"}
