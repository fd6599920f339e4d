"""API request models for the travel journal"""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateAccountRequest(_Request):
    """Request model for POST /create-account"""
    full_name: Optional[str] = Field(None, alias="fullName")
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(_Request):
    email: Optional[str] = None
    password: Optional[str] = None


class StoryRequest(_Request):
    """Body of add-travel-story and edit-story; visitedDate is epoch milliseconds, fractions truncated"""
    title: Optional[str] = None
    story: Optional[str] = None
    visited_location: Optional[str] = Field(None, alias="visitedLocation")
    image_url: Optional[str] = Field(None, alias="imageUrl")
    visited_date: Optional[Union[int, float, str]] = Field(None, alias="visitedDate")


class FavouriteRequest(_Request):
    is_favourite: Optional[bool] = Field(None, alias="isFavourite")
