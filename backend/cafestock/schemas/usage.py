"""Usage logging schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class RecipeUsageRequest(BaseModel):
    recipe_id: int
    servings: Optional[float] = None


class ManualUsageEntry(BaseModel):
    item_id: Optional[int] = None
    quantity: Optional[float] = None
    notes: Optional[str] = Field(None, max_length=500)


class ManualUsageRequest(BaseModel):
    items: List[ManualUsageEntry] = []


class UsageResponse(BaseModel):
    message: str
    items_updated: int
