"""Pydantic v2 model for app user documents.

Users are created by the consumer app at sign-up; the console only reads
them and changes ``status``. Legacy documents have no status field, so
the model supplies ``active`` as an explicit default instead of every
reader checking for a missing key.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from diskiadmin.status import ACTIVE, normalize_moderation_status


class UserModel(BaseModel):
    """Read model for a ``users`` document."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    display_name: str | None = Field(default=None, alias="displayName")
    username: str | None = None
    email: str | None = None
    favorite_team: str | None = Field(default=None, alias="favoriteTeam")
    points: int = 0
    rank: int | str | None = None
    status: str = ACTIVE

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, value):
        return normalize_moderation_status(value)

    @field_validator("points", mode="before")
    @classmethod
    def default_points(cls, value):
        return value or 0

    @property
    def label(self) -> str:
        """Best human-readable name for listings."""
        return self.display_name or self.username or self.email or self.id
