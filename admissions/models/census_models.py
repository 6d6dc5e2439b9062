"""Admissions Analytics — Geocoding & Census Models.

Shapes returned by the ``google-maps`` and ``census-data`` edge functions.
Both speak camelCase JSON; the models accept either spelling.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


class Coordinates(BaseModel):
    lat: float
    lng: float


class GeocodeResult(BaseModel):
    """A geocoded address."""

    model_config = _CAMEL

    formatted_address: str
    coordinates: Coordinates
    place_id: Optional[str] = None
    types: List[str] = []


class CensusDataItem(BaseModel):
    name: str
    value: Union[str, float, int]
    description: Optional[str] = None


class CensusCategories(BaseModel):
    demographic: List[CensusDataItem] = []
    economic: List[CensusDataItem] = []
    housing: List[CensusDataItem] = []
    education: List[CensusDataItem] = []


class CensusData(BaseModel):
    """ACS figures aggregated over the tracts around a point."""

    model_config = _CAMEL

    total_population: Optional[float] = None
    median_household_income: Optional[float] = None
    median_home_value: Optional[float] = None
    education_level_hs: Optional[float] = Field(default=None, alias="educationLevelHS")
    education_level_bachelor: Optional[float] = None
    unemployment_rate: Optional[float] = None
    poverty_rate: Optional[float] = None
    median_age: Optional[float] = None
    housing_units: Optional[float] = None
    homeownership_rate: Optional[float] = None
    raw_data: Union[Dict[str, Any], List[Any]] = {}
    categories: CensusCategories = CensusCategories()


class CensusLookup(BaseModel):
    """Census figures for an address, with how they were gathered."""

    model_config = _CAMEL

    data: CensusData
    tracts_included: int = 0
    block_groups_included: Optional[int] = None
    radius_miles: float = 0.0
    searched_address: str = ""
    coordinates: Optional[Coordinates] = None
    is_mock_data: bool = False
