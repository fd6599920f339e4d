"""
Travel story CRUD and queries.

Every operation is scoped to the requesting user: documents are always
looked up with {"_id": story_id, "userId": user_id}, so a story owned by
someone else behaves exactly like a missing one.
"""

import re
import threading
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from ..models.story import TravelStory
from ..store.document_store import DocumentStore
from ..utils.exceptions import NotFoundError, ValidationError
from ..utils.logger import get_logger
from .media_service import MediaService

logger = get_logger(__name__)

STORIES_COLLECTION = "stories"
# Favourites first, then oldest first
LISTING_ORDER = [("isFavourite", -1), ("createdOn", 1)]


def _run_in_daemon_thread(func: Callable, *args: Any) -> None:
    threading.Thread(target=func, args=args, daemon=True).start()


def parse_millis(value: Any, field: str = "visitedDate") -> datetime:
    """
    Convert epoch milliseconds to a UTC datetime.

    Accepts ints, floats and numeric strings; fractional milliseconds are
    truncated toward zero.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a timestamp in milliseconds")
    try:
        millis = int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            millis = int(float(value))
        except (TypeError, ValueError, OverflowError):
            raise ValidationError(f"{field} must be a timestamp in milliseconds")
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise ValidationError(f"{field} is out of range")


def _missing(*values: Any) -> bool:
    return any(v is None or v == "" for v in values)


class StoryService:
    def __init__(
        self,
        store: DocumentStore,
        media_service: MediaService,
        placeholder_image_url: str,
        run_in_background: Callable[..., None] = _run_in_daemon_thread,
    ):
        self.stories = store.collection(STORIES_COLLECTION)
        self.media_service = media_service
        self.placeholder_image_url = placeholder_image_url
        self.run_in_background = run_in_background

    def _owned(self, user_id: str, story_id: str) -> Optional[TravelStory]:
        doc = self.stories.find_one({"_id": story_id, "userId": user_id})
        return TravelStory(**doc) if doc else None

    def _list(self, query: dict) -> List[TravelStory]:
        return [TravelStory(**doc) for doc in self.stories.find(query, sort=LISTING_ORDER)]

    def create(
        self,
        user_id: str,
        title: str,
        story: str,
        visited_location: str,
        image_url: str,
        visited_date: Any,
    ) -> TravelStory:
        if _missing(title, story, visited_location, image_url, visited_date):
            raise ValidationError("All fields are required")

        travel_story = TravelStory(
            title=title,
            story=story,
            visited_location=visited_location,
            image_url=image_url,
            visited_date=parse_millis(visited_date),
            user_id=user_id,
        )
        self.stories.insert_one(travel_story.to_document())
        logger.info("Story created", story_id=travel_story.id, user_id=user_id)
        return travel_story

    def list_all(self, user_id: str) -> List[TravelStory]:
        return self._list({"userId": user_id})

    def edit(
        self,
        user_id: str,
        story_id: str,
        title: str,
        story: str,
        visited_location: str,
        image_url: Optional[str],
        visited_date: Any,
    ) -> TravelStory:
        """Replace the editable fields; a missing image_url becomes the placeholder"""
        if _missing(title, story, visited_location, visited_date):
            raise ValidationError("All fields are required")
        parsed_date = parse_millis(visited_date)

        if not self._owned(user_id, story_id):
            raise NotFoundError("Travel story not found")

        doc = self.stories.update_one(
            {"_id": story_id, "userId": user_id},
            {
                "title": title,
                "story": story,
                "visitedLocation": visited_location,
                "imageUrl": image_url or self.placeholder_image_url,
                "visitedDate": parsed_date,
            },
        )
        if doc is None:
            # Deleted between the lookup and the write
            raise NotFoundError("Travel story not found")
        logger.info("Story updated", story_id=story_id, user_id=user_id)
        return TravelStory(**doc)

    def remove(self, user_id: str, story_id: str) -> bool:
        """
        Delete a story and, in the background, its image file.

        Returns False when the user has no such story.
        """
        travel_story = self._owned(user_id, story_id)
        if not travel_story:
            return False
        if not self.stories.delete_one({"_id": story_id, "userId": user_id}):
            return False

        logger.info("Story deleted", story_id=story_id, user_id=user_id)
        self.run_in_background(self.media_service.discard, travel_story.image_url)
        return True

    def set_favourite(self, user_id: str, story_id: str, is_favourite: Any) -> TravelStory:
        doc = self.stories.update_one(
            {"_id": story_id, "userId": user_id},
            {"isFavourite": bool(is_favourite)},
        )
        if doc is None:
            raise NotFoundError("Travel story not found")
        return TravelStory(**doc)

    def search(self, user_id: str, query: Optional[str]) -> List[TravelStory]:
        """Case-insensitive substring match on title, story or location"""
        if not query:
            raise ValidationError("Query is required")
        pattern = {"$regex": re.escape(query), "$options": "i"}
        return self._list({
            "userId": user_id,
            "$or": [
                {"title": pattern},
                {"story": pattern},
                {"visitedLocation": pattern},
            ],
        })

    def filter_by_date(self, user_id: str, start_date: Any, end_date: Any) -> List[TravelStory]:
        """Stories visited within [start_date, end_date]; reversed bounds match nothing"""
        if _missing(start_date, end_date):
            raise ValidationError("startDate and endDate are required")
        start = parse_millis(start_date, "startDate")
        end = parse_millis(end_date, "endDate")
        return self._list({"userId": user_id, "visitedDate": {"$gte": start, "$lte": end}})
