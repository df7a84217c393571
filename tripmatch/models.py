"""Domain models for TripMatch.

Pydantic models for itineraries and the owner snapshot embedded in them.
Field names follow the remote store's camelCase wire format through aliases;
Python code uses the snake_case attribute names.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, StrictStr, field_validator, model_validator

from tripmatch.predicates import parse_epoch_ms

# Largest integer a JavaScript client can represent exactly (2**53 - 1).
MAX_SAFE_INTEGER = 9007199254740991

NO_PREFERENCE = "No Preference"


def _safe_int(v: Any) -> Any:
    """Coerce a day value to a safe integer, or raise ValueError."""
    if v is None:
        return None
    if isinstance(v, bool):
        raise ValueError("day value must be an integer, not a boolean")
    if isinstance(v, str):
        text = v.strip()
        if not text.lstrip("-").isdigit():
            raise ValueError(f"day value {v!r} is not an integer")
        v = int(text)
    elif isinstance(v, float):
        if not v.is_integer():
            raise ValueError(f"day value {v!r} is not an integer")
        v = int(v)
    elif not isinstance(v, int):
        raise ValueError(f"day value of type {type(v).__name__} is not an integer")
    if abs(v) > MAX_SAFE_INTEGER:
        raise ValueError(f"day value {v} is outside the safe integer range")
    return v


def _str_or_none(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None


def _range_bound(v: Any) -> Optional[int]:
    """An age bound as an int, or None when it cannot be read as one."""
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v) if v.is_integer() else None
    if isinstance(v, str):
        try:
            return int(v.strip())
        except ValueError:
            return None
    return None


def _list_or_empty(v: Any) -> Any:
    return v if isinstance(v, list) else []


class UserInfo(BaseModel):
    """Snapshot of the itinerary owner's profile.

    Profile fields are informational: a value of the wrong type is read as
    missing instead of invalidating the itinerary.
    """

    uid: Optional[Union[str, int, float]] = None
    username: Optional[str] = None
    email: Optional[str] = None
    dob: Optional[str] = None
    gender: Optional[str] = None
    status: Optional[str] = None
    sexual_orientation: Optional[str] = Field(default=None, alias="sexualOrientation")
    blocked: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("uid", mode="before")
    @classmethod
    def scalar_uid(cls, v: Any) -> Any:
        if isinstance(v, bool) or not isinstance(v, (str, int, float)):
            return None
        return v

    @field_validator(
        "username", "email", "dob", "gender", "status", "sexual_orientation", mode="before"
    )
    @classmethod
    def text_or_none(cls, v: Any) -> Optional[str]:
        return _str_or_none(v)

    @field_validator("blocked", mode="before")
    @classmethod
    def blocked_uids(cls, v: Any) -> list[str]:
        return [uid for uid in _list_or_empty(v) if isinstance(uid, str)]


class Itinerary(BaseModel):
    """A trip proposal plus the owner's match preferences.

    Only three things make a record malformed: a non-string id, day values
    outside the safe integer range, and ``metadata``/``response`` sent as raw
    strings. Day and age ranges must also be ordered. Everything else is
    coerced to an empty value so the filters can skip it.
    """

    id: StrictStr
    destination: str = ""
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    start_day: Optional[int] = Field(default=None, alias="startDay")
    end_day: Optional[int] = Field(default=None, alias="endDay")
    lower_range: Optional[int] = Field(default=None, alias="lowerRange")
    upper_range: Optional[int] = Field(default=None, alias="upperRange")
    gender: Optional[str] = None
    status: Optional[str] = None
    sexual_orientation: Optional[str] = Field(default=None, alias="sexualOrientation")
    likes: list[Any] = Field(default_factory=list)
    description: Optional[str] = None
    activities: list[Any] = Field(default_factory=list)
    metadata: Any = None
    response: Any = None
    user_info: Optional[UserInfo] = Field(default=None, alias="userInfo")

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("start_day", "end_day", mode="before")
    @classmethod
    def safe_day(cls, v: Any) -> Any:
        return _safe_int(v)

    @field_validator("destination", mode="before")
    @classmethod
    def destination_text(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator(
        "start_date", "end_date", "gender", "status", "sexual_orientation", "description",
        mode="before",
    )
    @classmethod
    def text_or_none(cls, v: Any) -> Optional[str]:
        return _str_or_none(v)

    @field_validator("lower_range", "upper_range", mode="before")
    @classmethod
    def range_bound(cls, v: Any) -> Optional[int]:
        return _range_bound(v)

    @field_validator("likes", "activities", mode="before")
    @classmethod
    def list_or_empty(cls, v: Any) -> Any:
        return _list_or_empty(v)

    @field_validator("metadata", "response", mode="before")
    @classmethod
    def structured_not_string(cls, v: Any) -> Any:
        if isinstance(v, str):
            raise ValueError("structured field arrived as a raw string")
        return v

    @field_validator("user_info", mode="before")
    @classmethod
    def user_info_mapping(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, UserInfo)) else None

    @model_validator(mode="after")
    def ranges_ordered(self) -> "Itinerary":
        if self.start_day is not None and self.end_day is not None:
            if self.start_day > self.end_day:
                raise ValueError("startDay must not be after endDay")
        if self.lower_range is not None and self.upper_range is not None:
            if self.lower_range > self.upper_range:
                raise ValueError("lowerRange must not exceed upperRange")
        return self

    @property
    def owner_uid(self) -> Optional[Union[str, int, float]]:
        """Owner's uid, or None when the snapshot is missing or blank."""
        if self.user_info is None or not self.user_info.uid:
            return None
        return self.user_info.uid

    @property
    def start_ms(self) -> Optional[int]:
        """Epoch milliseconds of start_date, None if missing or unparseable."""
        return parse_epoch_ms(self.start_date)

    @property
    def end_ms(self) -> Optional[int]:
        """Epoch milliseconds of end_date, None if missing or unparseable."""
        return parse_epoch_ms(self.end_date)

    @property
    def blocked_user_ids(self) -> list[str]:
        return list(self.user_info.blocked) if self.user_info else []

    def to_wire(self) -> dict[str, Any]:
        """Dump using the remote store's field names."""
        return self.model_dump(by_alias=True, exclude_none=True)
