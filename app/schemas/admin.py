from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional

NAME_PATTERN = r"^[A-Za-z0-9_]+$"


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class FieldUpsert(BaseModel):
    name: str = Field(min_length=1, max_length=80, pattern=NAME_PATTERN)
    label: str = Field(min_length=1, max_length=200)
    kind: str
    options: Optional[List[str]] = None

    @field_validator("name", "label", "kind", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)


class UserTypeFieldIn(BaseModel):
    field_id: str
    required: bool = False
    sort_order: int


class UserTypeUpsert(BaseModel):
    name: str = Field(min_length=2, max_length=50, pattern=NAME_PATTERN)
    fields: List[UserTypeFieldIn] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return _strip(value)


class UserTypeStatus(BaseModel):
    is_active: bool


class UserTypeDelete(BaseModel):
    confirmed: bool = False


class RequestStatusChange(BaseModel):
    status: Literal["approved", "rejected"]
    admin_notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value):
        return _strip(value).lower() if isinstance(value, str) else value

    @field_validator("admin_notes")
    @classmethod
    def normalize_notes(cls, value: Optional[str]) -> Optional[str]:
        text = str(value or "").strip()
        return text or None
