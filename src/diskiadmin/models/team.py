"""Pydantic v2 validation models for team and competition documents."""

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class TeamModel(BaseModel):
    """A club or national team with its home venue.

    Field names match the documents the consumer app already reads
    (venue attributes flattened with a ``venue_`` prefix).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(gt=0)
    name: str = Field(min_length=1)
    code: str | None = None
    country: str | None = None
    founded: int = Field(default=0, ge=0)
    national: bool = False
    logo: str | None = None
    venue_id: int | None = None
    venue_name: str | None = None
    venue_address: str | None = None
    venue_city: str | None = None
    venue_capacity: int | None = Field(default=None, ge=0)
    venue_surface: str | None = None
    venue_image: str | None = None
    season: int
    updated_at: AwareDatetime = Field(alias="updatedAt")


class CompetitionModel(BaseModel):
    """A league or cup; ``season`` is the season current at the last sync."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(gt=0)
    name: str = Field(min_length=1)
    country: str | None = None
    country_code: str | None = Field(default=None, alias="countryCode")
    logo: str | None = None
    type: str | None = None
    season: int | None = None
    updated_at: AwareDatetime = Field(alias="updatedAt")
