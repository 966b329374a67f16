"""Models module exporting all database models."""

from .review import Review
from .tour import Difficulty, Tour
from .user import User, UserRole

__all__ = [
    # Core entity
    "Tour",
    "Difficulty",

    # Referenced entities
    "User",
    "UserRole",
    "Review",
]
