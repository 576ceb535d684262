from pydantic import BaseModel, Field
from typing import Dict, Optional, Union

# Stored payloads are flat: every value is a string, a number, a boolean or null.
PayloadValue = Optional[Union[bool, int, float, str]]


class PublicRequestCreate(BaseModel):
    user_type_id: str
    data: Dict[str, PayloadValue] = Field(default_factory=dict)


class PublicRequestCreated(BaseModel):
    request_id: str
    user_type_id: str
    type_name: str
    status: str
    created_at: Optional[str] = None
