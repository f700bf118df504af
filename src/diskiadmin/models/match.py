"""Pydantic v2 validation models for match documents.

MatchModel validates records built from API-Football fixtures before they
are merged into ``matches``. MatchFormModel validates the manual match form
(matches created by staff without a remote fixture id).

Both dump with ``by_alias=True`` to the camelCase field names the consumer
app reads (``homeTeam``, ``apiMatchId``, ...). Timestamps stay ``datetime`` objects
so the Firestore client stores them as Timestamps.
"""

import warnings
from typing import Literal

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from typing_extensions import Self

from diskiadmin.status import normalize_form_status

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^\d{2}:\d{2}$"

Lifecycle = Literal["upcoming", "live", "finished"]


class MatchModel(BaseModel):
    """Validation model for a match imported from the remote source.

    ``isMatchOfTheDay`` and ``createdAt`` are deliberately absent: a merge
    write of this record must not reset an admin's highlight or the
    original creation time.
    """

    model_config = ConfigDict(populate_by_name=True)

    home_team: str = Field(alias="homeTeam", min_length=1)
    home_team_id: int | None = Field(default=None, alias="homeTeamId", gt=0)
    home_logo: str = Field(default="", alias="homeLogo")
    away_team: str = Field(alias="awayTeam", min_length=1)
    away_team_id: int | None = Field(default=None, alias="awayTeamId", gt=0)
    away_logo: str = Field(default="", alias="awayLogo")
    home_score: int = Field(default=0, alias="homeScore", ge=0)
    away_score: int = Field(default=0, alias="awayScore", ge=0)
    status: Lifecycle
    date: str = Field(pattern=DATE_PATTERN)
    time: str = Field(pattern=TIME_PATTERN)
    match_date: AwareDatetime = Field(alias="matchDate")
    venue: str = ""
    competition_id: int | None = Field(default=None, alias="competitionId")
    competition_name: str = Field(default="", alias="competitionName")
    api_match_id: int = Field(alias="apiMatchId", gt=0)
    lineups: list[dict] = Field(default_factory=list)
    events: list[dict] = Field(default_factory=list)
    updated_at: AwareDatetime = Field(alias="updatedAt")

    @model_validator(mode="after")
    def check_teams_different(self) -> Self:
        """Home and away should be different teams."""
        if (
            self.home_team_id is not None
            and self.home_team_id == self.away_team_id
        ):
            raise ValueError(
                f"homeTeamId and awayTeamId are identical ({self.home_team_id})"
            )
        return self

    @model_validator(mode="after")
    def check_scores_for_upcoming(self) -> Self:
        """An upcoming match normally has no goals yet (soft check)."""
        if self.status == "upcoming" and (self.home_score or self.away_score):
            warnings.warn(
                f"Upcoming match {self.api_match_id} already has a score "
                f"{self.home_score}-{self.away_score}",
                stacklevel=2,
            )
        return self


class MatchFormModel(BaseModel):
    """Validation model for the manual create/edit match form.

    Only the form-level required fields are enforced: both team names,
    date and time.
    """

    model_config = ConfigDict(populate_by_name=True)

    home_team: str = Field(alias="homeTeam", min_length=1)
    away_team: str = Field(alias="awayTeam", min_length=1)
    home_score: int = Field(default=0, alias="homeScore", ge=0)
    away_score: int = Field(default=0, alias="awayScore", ge=0)
    status: Lifecycle = "upcoming"
    date: str = Field(pattern=DATE_PATTERN)
    time: str = Field(pattern=TIME_PATTERN)
    venue: str = ""
    is_match_of_the_day: bool = Field(default=False, alias="isMatchOfTheDay")

    @field_validator("home_team", "away_team", "venue", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("status", mode="before")
    @classmethod
    def normalize_label(cls, value):
        """Accept the legacy Scheduled/Live/Finished labels."""
        return normalize_form_status(value)
