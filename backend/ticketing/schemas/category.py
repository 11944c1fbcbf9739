from typing import Optional
from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    # Presence is checked by the service so a missing name gets its own message
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]

    model_config = {"from_attributes": True}
