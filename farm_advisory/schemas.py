# farm_advisory/schemas.py
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

CROP_TYPES = [
    "Rice", "Wheat", "Corn", "Sugarcane", "Cotton", "Soybeans", "Tomatoes",
    "Potatoes", "Onions", "Beans", "Peas", "Carrots", "Cabbage", "Spinach",
]


class CropStatus(str, Enum):
    planted = "planted"
    growing = "growing"
    flowering = "flowering"
    ready = "ready"
    harvested = "harvested"


class HealthStatus(str, Enum):
    excellent = "excellent"
    good = "good"
    fair = "fair"
    poor = "poor"


class CamelModel(BaseModel):
    """Python names in snake_case, JSON names in camelCase."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def _check_harvest_window(planted: Optional[date], harvest: Optional[date]) -> None:
    if planted is not None and harvest is not None and harvest < planted:
        raise ValueError("expectedHarvest must not be before plantedDate")


# ---------- crops ----------

class CropCreate(CamelModel):
    name: str = Field(..., min_length=1)
    variety: Optional[str] = None
    planted_date: date
    expected_harvest: Optional[date] = None
    area: Optional[float] = Field(None, gt=0)
    location: Optional[str] = None
    status: Optional[CropStatus] = None
    health_status: Optional[HealthStatus] = None
    progress: Optional[float] = Field(None, ge=0, le=100)
    last_watered: Optional[date] = None
    notes: Optional[str] = None
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def _dates_in_order(self):
        _check_harvest_window(self.planted_date, self.expected_harvest)
        return self


# Update bodies may omit these but never clear them
_NOT_NULLABLE_ON_UPDATE = ("name", "planted_date", "status", "health_status", "progress", "last_watered")


class CropUpdate(CamelModel):
    """
    Partial update. Only fields present in the request body are merged;
    anything not declared here is rejected.
    """
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    variety: Optional[str] = None
    planted_date: Optional[date] = None
    expected_harvest: Optional[date] = None
    area: Optional[float] = Field(None, gt=0)
    location: Optional[str] = None
    status: Optional[CropStatus] = None
    health_status: Optional[HealthStatus] = None
    progress: Optional[float] = Field(None, ge=0, le=100)
    last_watered: Optional[date] = None
    notes: Optional[str] = None
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def _no_clearing_required_fields(self):
        for field in _NOT_NULLABLE_ON_UPDATE:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{to_camel(field)} cannot be null")
        _check_harvest_window(self.planted_date, self.expected_harvest)
        return self

    def changes(self) -> Dict[str, Any]:
        """Explicitly set fields, keyed by wire name."""
        return self.model_dump(by_alias=True, mode="json", exclude_unset=True)


class Crop(CamelModel):
    id: str
    name: str
    variety: Optional[str] = None
    planted_date: date
    expected_harvest: Optional[date] = None
    area: Optional[float] = None
    location: Optional[str] = None
    status: CropStatus
    health_status: HealthStatus
    progress: float = Field(..., ge=0, le=100)
    last_watered: date
    notes: str = ""
    image_url: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# ---------- accounts ----------

class SignupRequest(CamelModel):
    email: str = Field(..., min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    farm_size: Optional[Union[float, str]] = None
    location: Optional[str] = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


# ---------- advisory ----------

class RecommendationRequest(CamelModel):
    location: str = Field(..., min_length=1)
    season: str = Field(..., min_length=1)
    soil_type: str = Field(..., min_length=1)


class Recommendation(CamelModel):
    crop: str
    suitability: int = Field(..., ge=0, le=100)
    reason: str
    expected_yield: str
    planting_time: str
    harvest_time: str


class ConsultationRequest(BaseModel):
    question: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    urgency: str = Field(..., min_length=1)

    model_config = ConfigDict(str_strip_whitespace=True)
