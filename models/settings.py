from pydantic import BaseModel
from typing import Any, Union

SettingValue = Union[bool, int, float, str]


class SettingUpdate(BaseModel):
    value: SettingValue


class SettingEntry(BaseModel):
    key: str
    value: Any = None
    created_at: int
    updated_at: int
    version: int = 1
    dirty: bool = True

    class Config:
        from_attributes = True
