from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from .base import CamelModel

StepStatus = Literal["pending", "in_progress", "completed"]
RunStatus = Literal["in_progress", "completed", "failed"]


class ProgressStep(CamelModel):
    id: str
    name: str
    percentage: int = Field(ge=0, le=100)
    status: StepStatus = "pending"
    details: dict[str, Any] | None = None


class ProgressEvent(CamelModel):
    current_step: ProgressStep
    percentage: int = Field(ge=0, le=100)
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    completed: bool = False
    status: RunStatus = "in_progress"
    timestamp: int


class ProgressSnapshot(CamelModel):
    analysis_id: str
    percentage: int = Field(ge=0, le=100)
    current_step: ProgressStep | None = None
    all_steps: list[ProgressStep] = Field(default_factory=list)
    elapsed_time: int = 0
    completed: bool = False
    status: RunStatus = "in_progress"
