"""User data models for authentication"""

from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """Registered account. Only the bcrypt hash of the password is kept."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex, alias="_id")
    full_name: str = Field(alias="fullName")
    email: str
    password_hash: str = Field(alias="password")
    created_on: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdOn"
    )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def public(self) -> Dict[str, Any]:
        """Projection safe to hand to clients (never includes the hash)"""
        return {"id": self.id, "fullName": self.full_name, "email": self.email}
