"""Pydantic schemas for activity drafts."""

from typing import Any

from pydantic import BaseModel, Field

from .service import ActivitySaveResult
from .status import SubmissionStatus


class SaveActivityRequest(BaseModel):
    """Whole-blob autosave of a multi-step activity."""

    module_id: int
    step: int = Field(..., ge=0, description="Zero-based step the student is on")
    responses: dict[str, Any] = Field(default_factory=dict)


class ActivityProgressResponse(BaseModel):
    step: int
    responses: dict[str, Any]


class ActivitySaveResponse(BaseModel):
    saved: bool = Field(description="False when the blob equals the stored one")
    status: SubmissionStatus | None = None
    step: int
    responses: dict[str, Any]

    @classmethod
    def from_result(cls, result: ActivitySaveResult) -> "ActivitySaveResponse":
        return cls(
            saved=result.saved,
            status=result.status,
            step=result.metadata.get("step", 0),
            responses=result.metadata.get("responses", {}),
        )
