from .story import TravelStory
from .user import User

__all__ = ["TravelStory", "User"]
