"""Reference data schemas."""

from pydantic import BaseModel


class CategoryResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class UnitResponse(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}
