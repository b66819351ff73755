from clout import db  # noqa: F401 - imported for model imports

from .event import Event, Fight
from .pick import Pick, pick_likes
from .user import User, follows

__all__ = [
    "User",
    "Event",
    "Fight",
    "Pick",
    "follows",
    "pick_likes",
]
