"""
Signing Order and Vendor Models

Records consumed by the routing engine. Orders and vendors arrive from an
external store (or JSON on the command line) and are validated here; the
engine itself only ever sees these typed, immutable models.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum
from collections.abc import Mapping
from typing import Any, FrozenSet, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import InvalidOrderError, InvalidVendorError
from .utils.geographies import haversine_miles, normalize_state_code, normalize_state_list


class SigningType(str, Enum):
    """How the signing is conducted"""
    RON = "ron"                       # Remote online notarization (live video)
    MOBILE = "mobile"                 # In person, vendor travels to the signer
    HYBRID = "hybrid"                 # RON package plus wet-ink pages in person

    @classmethod
    def parse(cls, value: Any) -> "SigningType":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        key = _SIGNING_TYPE_ALIASES.get(key, key)
        return cls(key)

    @property
    def requires_ron(self) -> bool:
        return self in (SigningType.RON, SigningType.HYBRID)

    @property
    def requires_travel(self) -> bool:
        return self in (SigningType.MOBILE, SigningType.HYBRID)


_SIGNING_TYPE_ALIASES = {
    "in_person": "mobile",
    "inperson": "mobile",
    "remote": "ron",
}


class LoanType(str, Enum):
    """Loan product behind the signing package"""
    PURCHASE = "purchase"
    REFINANCE = "refinance"
    HELOC = "heloc"
    REVERSE = "reverse"
    COMMERCIAL = "commercial"
    DSCR = "dscr"
    VA = "va"
    FHA = "fha"
    CONSTRUCTION = "construction"
    OTHER = "other"


class ServiceTier(str, Enum):
    """Service level requested by the title client"""
    STANDARD = "standard"
    PRIORITY = "priority"
    RESCUE = "rescue"


class VendorTier(IntEnum):
    """Ordered vendor classification; higher is better."""
    BRONZE = 1
    SILVER = 2
    GOLD = 3
    PLATINUM = 4

    @classmethod
    def parse(cls, value: Any) -> "VendorTier":
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        key = str(value).strip().upper()
        if key == "ELITE":
            return cls.PLATINUM
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown vendor tier '{value}'") from None

    @property
    def label(self) -> str:
        return self.name.lower()


def _lower_enum_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class GeoPoint(BaseModel):
    """Approximate location in decimal degrees."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def distance_to(self, other: "GeoPoint") -> float:
        """Great-circle distance in miles."""
        return haversine_miles(self.latitude, self.longitude, other.latitude, other.longitude)


class TimeWindow(BaseModel):
    """Closed time interval. Naive datetimes are taken to be UTC."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def check_order(self):
        if self.end <= self.start:
            raise ValueError("window end must be after window start")
        return self

    def covers(self, other: "TimeWindow") -> bool:
        return self.start <= other.start and self.end >= other.end


class SigningOrder(BaseModel):
    """
    A document-signing job awaiting assignment.

    Field names follow snake_case; camelCase and the legacy
    ``property_state`` spelling are accepted on input.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    state: str = Field(validation_alias=AliasChoices("state", "property_state", "propertyState"))
    signing_type: SigningType = Field(alias="signingType")
    loan_type: Optional[LoanType] = Field(default=None, alias="loanType")
    service_tier: ServiceTier = Field(default=ServiceTier.STANDARD, alias="serviceTier")
    required_window: Optional[TimeWindow] = Field(default=None, alias="requiredWindow")
    location: Optional[GeoPoint] = None

    @field_validator("state", mode="before")
    @classmethod
    def normalize_state(cls, v):
        state = normalize_state_code(v)
        if not state:
            raise ValueError("state is required")
        return state

    @field_validator("signing_type", mode="before")
    @classmethod
    def parse_signing_type(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("signing type is required")
        return SigningType.parse(v)

    @field_validator("loan_type", mode="before")
    @classmethod
    def parse_loan_type(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return _lower_enum_value(v)

    @field_validator("service_tier", mode="before")
    @classmethod
    def parse_service_tier(cls, v):
        if v is None:
            return ServiceTier.STANDARD
        return _lower_enum_value(v)

    @classmethod
    def parse_record(cls, data: "SigningOrder | Mapping[str, Any]") -> "SigningOrder":
        """Validate an order record, raising InvalidOrderError on bad input."""
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise InvalidOrderError(f"Order must be a mapping, got {type(data).__name__}")
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as exc:
            field, message = _first_error(cls, exc)
            raise InvalidOrderError(
                f"Invalid order: {message}",
                field=field,
                details={"errors": _error_summaries(exc)},
            ) from exc


class Vendor(BaseModel):
    """A notary service provider from the active roster."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    name: Optional[str] = None
    licensed_states: FrozenSet[str] = Field(default=frozenset(), alias="licensedStates")
    ron_authorized: bool = Field(
        default=False,
        validation_alias=AliasChoices("ron_authorized", "ronAuthorized", "ron_certified"),
    )
    tier: VendorTier = VendorTier.BRONZE
    specializations: FrozenSet[str] = frozenset()
    performance_score: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        validation_alias=AliasChoices("performance_score", "performanceScore", "elite_score"),
    )
    availability: Optional[Tuple[TimeWindow, ...]] = None
    location: Optional[GeoPoint] = None
    max_travel_radius_miles: Optional[float] = Field(default=None, gt=0, alias="maxTravelRadiusMiles")

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v).strip() if v is not None else v

    @field_validator("licensed_states", mode="before")
    @classmethod
    def normalize_states(cls, v):
        if isinstance(v, str):
            v = [v]
        return frozenset(normalize_state_list(v))

    @field_validator("specializations", mode="before")
    @classmethod
    def normalize_specializations(cls, v):
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(str(s).strip().lower() for s in v if str(s).strip())

    @field_validator("tier", mode="before")
    @classmethod
    def parse_tier(cls, v):
        if v is None:
            return VendorTier.BRONZE
        return VendorTier.parse(v)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def is_licensed_in(self, state: str) -> bool:
        return normalize_state_code(state) in self.licensed_states

    def is_available_for(self, window: Optional[TimeWindow]) -> bool:
        """No declared calendar means always available."""
        if window is None or self.availability is None:
            return True
        return any(slot.covers(window) for slot in self.availability)

    @classmethod
    def parse_record(cls, data: "Vendor | Mapping[str, Any]") -> "Vendor":
        """Validate a roster entry, raising InvalidVendorError on bad input."""
        if isinstance(data, cls):
            return data
        if not isinstance(data, Mapping):
            raise InvalidVendorError(f"Vendor must be a mapping, got {type(data).__name__}")
        vendor_id = data.get("id")
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as exc:
            field, message = _first_error(cls, exc)
            raise InvalidVendorError(
                f"Invalid vendor record: {message}",
                vendor_id=str(vendor_id) if vendor_id is not None else None,
                field=field,
                details={"errors": _error_summaries(exc)},
            ) from exc


def _field_name(model: type, loc_head: Any) -> str:
    """Map an error location (possibly a camelCase alias) back to the field name."""
    key = str(loc_head)
    for name, info in model.model_fields.items():
        if key == name or key == info.alias:
            return name
        choices = getattr(info.validation_alias, "choices", None) or ()
        if key in choices:
            return name
    return key


def _first_error(model: type, exc: PydanticValidationError) -> Tuple[Optional[str], str]:
    errors = exc.errors()
    if not errors:
        return None, str(exc)
    first = errors[0]
    loc = first.get("loc") or ()
    field = _field_name(model, loc[0]) if loc else None
    message = first.get("msg", "validation failed")
    if field:
        message = f"{field}: {message}"
    return field, message


def _error_summaries(exc: PydanticValidationError) -> list:
    return [
        {"loc": ".".join(str(p) for p in err.get("loc", ())), "msg": err.get("msg")}
        for err in exc.errors()
    ]
