"""Travel story data models"""

from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class TravelStory(BaseModel):
    """A dated journal entry owned by exactly one user"""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex, alias="_id")
    title: str
    story: str
    visited_location: str = Field(alias="visitedLocation")
    image_url: str = Field(alias="imageUrl")
    visited_date: datetime = Field(alias="visitedDate")
    is_favourite: bool = Field(default=False, alias="isFavourite")
    user_id: str = Field(alias="userId")
    created_on: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdOn"
    )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self) -> Dict[str, Any]:
        """Wire representation, camelCase keys and ISO dates"""
        return self.model_dump(by_alias=True, mode="json")
