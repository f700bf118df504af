"""Pydantic v2 validation models for all stored document types.

Re-exports all model classes for convenient import::

    from diskiadmin.models import MatchModel, TeamModel, ...
"""

from .match import MatchFormModel, MatchModel
from .team import CompetitionModel, TeamModel
from .user import UserModel

__all__ = [
    "MatchModel",
    "MatchFormModel",
    "TeamModel",
    "CompetitionModel",
    "UserModel",
]
