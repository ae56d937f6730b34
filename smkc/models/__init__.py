"""Database models."""
from smkc.models.base import Base, get_async_session, init_db
from smkc.models.player import Player
from smkc.models.tournament import Tournament
from smkc.models.qualification import Qualification
from smkc.models.finals_match import FinalsMatch  # noqa: F401 - for metadata
from smkc.models.user import User  # noqa: F401 - for metadata

__all__ = [
    "Base",
    "Player",
    "Tournament",
    "Qualification",
    "FinalsMatch",
    "User",
    "get_async_session",
    "init_db",
]
