"""Pydantic schemas for the menu approval workflow."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mealgate.models.approval import MenuStatus


class MenuSubmitRequest(BaseModel):
    notes: Optional[str] = None


class ApproveRequest(BaseModel):
    notes: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class MenuApprovalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    menu_id: str
    status: MenuStatus
    submitted_by: str
    submitted_at: datetime
    resolved_by: Optional[str]
    resolved_at: Optional[datetime]
    notes: Optional[str]
    rejection_reason: Optional[str]
    allergen_warnings: list[str]
