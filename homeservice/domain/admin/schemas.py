"""Admin domain schemas"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...constants import PROVIDER_REJECTION_REASONS

BATCH_ACTIONS = ("approve", "reject")


class ApproveProviderRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)


class RejectProviderRequest(BaseModel):
    reason: str
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        if v not in PROVIDER_REJECTION_REASONS:
            raise ValueError(f"Rejection reason must be one of: {', '.join(PROVIDER_REJECTION_REASONS)}")
        return v


class AdminServiceStatusUpdate(BaseModel):
    status: str
    reason: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=500)


class BatchServiceAction(BaseModel):
    serviceIds: list[int] = Field(..., min_length=1)
    action: str

    @field_validator("action")
    @classmethod
    def validate_action(cls, v: str) -> str:
        if v not in BATCH_ACTIONS:
            raise ValueError('Invalid action. Must be "approve" or "reject"')
        return v


class UserStatusUpdate(BaseModel):
    status: str
