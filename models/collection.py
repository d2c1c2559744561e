from pydantic import BaseModel
from typing import Optional


class CollectionBase(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class CollectionCreate(CollectionBase):
    pass


class CollectionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None


class Collection(CollectionBase):
    id: str
    sort_order: int = 0
    created_at: int
    updated_at: int

    class Config:
        from_attributes = True
