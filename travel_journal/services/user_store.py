"""
User storage service over the "users" collection.
"""

from typing import Optional

from ..models.user import User
from ..store.document_store import DocumentStore
from ..utils.exceptions import ConflictError
from ..utils.logger import get_logger

logger = get_logger(__name__)

USERS_COLLECTION = "users"


class UserStore:
    """Credential store; emails are unique across all users"""

    def __init__(self, store: DocumentStore):
        self.users = store.collection(USERS_COLLECTION)

    def find_by_email(self, email: str) -> Optional[User]:
        """Find user by email (exact match)"""
        doc = self.users.find_one({"email": email})
        return User(**doc) if doc else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        doc = self.users.find_one({"_id": user_id})
        return User(**doc) if doc else None

    def create_user(self, user: User) -> User:
        """Persist a new user; raises ConflictError on a duplicate email"""
        with self.users.store.lock:
            if self.users.find_one({"email": user.email}):
                raise ConflictError("User already exists")
            self.users.insert_one(user.to_document())
        logger.info("User created", user_id=user.id)
        return user
