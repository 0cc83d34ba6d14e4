"""Role lookup schemas."""
from typing import List, Union

from pydantic import AliasChoices, BaseModel, Field


class RoleLookupRequest(BaseModel):
    user_id: Union[int, str] = Field(validation_alias=AliasChoices("userId", "user_id"))


class RoleLookupResponse(BaseModel):
    user_id: int = Field(serialization_alias="userId")
    role: str
    groups: List[str]
