"""API routes."""

from fastapi import APIRouter

from cafestock.api.routes import auth, export, inventory, ordering, recipes, reference, users

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(ordering.router, prefix="/ordering", tags=["ordering"])
api_router.include_router(recipes.router, prefix="/recipes", tags=["recipes"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(reference.router, tags=["reference"])
api_router.include_router(export.router, prefix="/export", tags=["export"])
