from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict


class Event(BaseModel):
    """One entry of the NetBird activity log, as returned by ``/api/events``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., description="Opaque source identifier")
    timestamp: str = Field(..., description="Source timestamp, expected RFC3339")
    activity: str = Field(..., description="Human-readable activity name")
    activity_code: str = Field(..., description="Stable machine code for the activity")
    initiator_id: str | None = None
    initiator_email: str | None = None
    initiator_name: str | None = None
    target_id: str | None = None
    account_id: str | None = None
    meta: Dict[str, Any] | None = None
