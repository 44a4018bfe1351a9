import json
from datetime import datetime, timedelta
from typing import Annotated, Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NaiveDatetime,
    model_validator,
)

# Column order of the compact (non-verbose) entry form sent by players
POSITIONAL_FIELDS = (
    "display_unit_id",
    "frame_id",
    "n_screens",
    "ad_copy_id",
    "campaign_id",
    "schedule_id",
    "impressions",
    "interactions",
    "end_time",
    "duration",
    "ext1",
    "ext2",
    "extra_data",
)

EPOCH = datetime(1970, 1, 1)

# Bounded to the signed 64 and 32 bit storage columns
BigId = Annotated[int, Field(ge=0, le=2**63 - 1)]
Count = Annotated[int, Field(ge=0, le=2**31 - 1)]


def naive_datetime_to_millis(value: datetime) -> int:
    """Milliseconds since the Unix epoch, reading ``value`` as-is (no timezone shift)."""
    return (value - EPOCH) // timedelta(milliseconds=1)


class PopEntry(BaseModel):
    """A single proof-of-play entry, in either compact or verbose form.

    Players send their local wall-clock time for ``end_time`` without a zone,
    so it is kept naive and never converted.
    """

    model_config = ConfigDict(populate_by_name=True)

    display_unit_id: BigId
    frame_id: BigId
    active_screens_count: Count = Field(alias="n_screens")
    ad_copy_id: BigId
    campaign_id: BigId
    schedule_id: BigId
    impressions: Count
    interactions: Count
    end_time: NaiveDatetime
    duration_ms: Count = Field(alias="duration")
    service_name: str = Field(alias="ext1")
    service_value: str = Field(alias="ext2")
    # Added in later player releases; older players omit it entirely
    extra_data: Optional[Any] = None

    @model_validator(mode="before")
    @classmethod
    def _expand_positional_form(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)):
            required = len(POSITIONAL_FIELDS) - 1
            if not required <= len(data) <= len(POSITIONAL_FIELDS):
                raise ValueError(
                    f"compact pop entry must have {required} or "
                    f"{len(POSITIONAL_FIELDS)} values, got {len(data)}"
                )
            return dict(zip(POSITIONAL_FIELDS, data))
        return data

    @property
    def end_time_ms(self) -> int:
        return naive_datetime_to_millis(self.end_time)

    def serialized_extra_data(self) -> Optional[str]:
        if self.extra_data is None:
            return None
        return json.dumps(self.extra_data)


class PopSubmission(BaseModel):
    """One batch of pops from one player, authenticated by ``api_key``."""

    model_config = ConfigDict(populate_by_name=True)

    api_key: str
    player_id: BigId
    pops: List[PopEntry] = Field(alias="pop", min_length=1)
