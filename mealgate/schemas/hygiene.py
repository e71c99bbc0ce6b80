"""Pydantic schemas for kitchen hygiene checks."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from mealgate.models.hygiene import HygieneStatus


class HygieneCheckCreate(BaseModel):
    """
    Body for POST /kitchens/{kitchen_id}/hygiene-checks.
    Category scores are bounded by HYGIENE_ITEM_MAX in the gate, which owns
    the configured scale.
    """

    check_date: Optional[date] = None   # defaults to today
    inspector_name: Optional[str] = None
    inspector_signature: Optional[str] = None

    cleanliness_score: int = Field(..., ge=0)
    temperature_control_score: int = Field(..., ge=0)
    equipment_maintenance_score: int = Field(..., ge=0)
    storage_conditions_score: int = Field(..., ge=0)
    water_quality_score: int = Field(..., ge=0)
    waste_management_score: int = Field(..., ge=0)
    staff_hygiene_score: int = Field(..., ge=0)
    staff_lunch_assistant_score: int = Field(..., ge=0)

    issues_identified: list[str] = Field(default_factory=list)


class HygieneCheckRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    kitchen_id: str
    check_date: date
    inspector_name: Optional[str]
    cleanliness_score: int
    temperature_control_score: int
    equipment_maintenance_score: int
    storage_conditions_score: int
    water_quality_score: int
    waste_management_score: int
    staff_hygiene_score: int
    staff_lunch_assistant_score: int
    overall_score: int
    status: HygieneStatus
    issues_identified: list[str]
    correction_status: Optional[str]
    correction_deadline: Optional[datetime]
    created_at: datetime


class CorrectionRequest(BaseModel):
    correction_status: str = Field(..., min_length=1)


class ComplianceReport(BaseModel):
    kitchen_id: str
    months: int
    total_checks: int
    passed_checks: int
    failed_checks: int
    compliance_percentage: int
    average_score: int
    trend: Literal["IMPROVING", "DECLINING", "STABLE"]
    latest_check: Optional[HygieneCheckRead] = None
