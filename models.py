"""Value records shared by the wizard, the Gemini service and the renderer."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class WaterType(str, Enum):
    FRESHWATER = "freshwater"
    SALTWATER = "saltwater"


class Step(str, Enum):
    """The five screens of the wizard."""

    LOCATION = "LOCATION"
    PREFERENCES = "PREFERENCES"
    LOADING = "LOADING"
    RESULTS = "RESULTS"
    ERROR = "ERROR"


class Location(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    label: Optional[str] = None  # e.g. "Wilmington, NC" for zip lookups


class Preferences(BaseModel):
    water_type: WaterType = WaterType.FRESHWATER
    fish_type: str

    @field_validator("fish_type")
    @classmethod
    def _require_species(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("fish_type must not be blank")
        return value


class LocalSpecies(BaseModel):
    freshwater: List[str]
    saltwater: List[str]

    def for_water(self, water_type: WaterType) -> List[str]:
        if water_type == WaterType.SALTWATER:
            return list(self.saltwater)
        return list(self.freshwater)


class WebSource(BaseModel):
    uri: str = ""
    title: str = ""


class MapsSource(BaseModel):
    uri: str = ""
    title: str = ""
    place_id: str = ""


class GroundingChunk(BaseModel):
    """A citation returned with a search-grounded answer."""

    web: Optional[WebSource] = None
    maps: Optional[MapsSource] = None


class RecommendationResult(BaseModel):
    markdown: str
    grounding_chunks: List[GroundingChunk] = []
