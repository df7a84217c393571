"""Pydantic models for the matching search pipeline."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from tripmatch.models import Itinerary


class SearchRequest(BaseModel):
    """Payload of one remote ``searchItineraries`` call."""

    destination: str
    gender: Optional[str] = None
    status: Optional[str] = None
    sexual_orientation: Optional[str] = Field(default=None, alias="sexualOrientation")
    min_start_day: Optional[int] = Field(default=None, alias="minStartDay")
    max_end_day: Optional[int] = Field(default=None, alias="maxEndDay")
    page_size: int = Field(default=10, ge=1, alias="pageSize")
    excluded_ids: list[str] = Field(default_factory=list, alias="excludedIds")
    blocked_user_ids: list[str] = Field(default_factory=list, alias="blockedUserIds")
    current_user_id: str = Field(alias="currentUserId")
    lower_range: Optional[int] = Field(default=None, alias="lowerRange")
    upper_range: Optional[int] = Field(default=None, alias="upperRange")

    model_config = {"populate_by_name": True}

    @classmethod
    def build(
        cls,
        itinerary: Itinerary,
        current_user_id: str,
        page_size: int,
        excluded_ids: list[str],
    ) -> "SearchRequest":
        """Derive the coarse, indexable criteria from the user's own itinerary."""
        return cls(
            destination=itinerary.destination,
            gender=itinerary.gender,
            status=itinerary.status,
            sexual_orientation=itinerary.sexual_orientation,
            min_start_day=itinerary.start_ms,
            max_end_day=itinerary.end_ms,
            page_size=page_size,
            excluded_ids=list(excluded_ids),
            blocked_user_ids=itinerary.blocked_user_ids,
            current_user_id=current_user_id,
            lower_range=itinerary.lower_range,
            upper_range=itinerary.upper_range,
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def cache_key_params(self) -> dict[str, Any]:
        """Parameters in the shape understood by ``generate_key``."""
        return {
            "destination": self.destination,
            "userProfile": {
                "gender": self.gender,
                "status": self.status,
                "sexualOrientation": self.sexual_orientation,
            },
        }


class SearchState(BaseModel):
    """Observable snapshot of a SearchOrchestrator."""

    loading: bool = False
    error: Optional[str] = None
    has_more: bool = True
    matching_itineraries: list[Itinerary] = Field(default_factory=list)

    @property
    def current(self) -> Optional[Itinerary]:
        return self.matching_itineraries[0] if self.matching_itineraries else None
