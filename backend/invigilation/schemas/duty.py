from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class AcknowledgeRequest(BaseModel):
    action: Literal["acknowledge", "unavailable"] = "acknowledge"
    reason: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def validate_reason(self) -> "AcknowledgeRequest":
        if self.action == "unavailable" and not (self.reason or "").strip():
            raise ValueError("A reason is required when marking unavailable")
        return self


class LiveStatusRequest(BaseModel):
    status: Literal["present", "on_the_way", "unable_to_reach"]
    eta: str | None = Field(default=None, max_length=50)
    emergency_reason: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def validate_fields(self) -> "LiveStatusRequest":
        if self.status == "unable_to_reach" and not (self.emergency_reason or "").strip():
            raise ValueError("An emergency reason is required when unable to reach")
        return self
