"""Pydantic schemas for student allergy records."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mealgate.utils.allergy_data import Severity


class StudentAllergyCreate(BaseModel):
    """
    Body for POST /allergies. Records always start unverified; doctor details
    may be attached now or at verification time.
    """

    student_id: uuid.UUID
    allergen_id: uuid.UUID
    description: Optional[str] = None
    severity: Severity = Severity.MODERATE
    doctor_name: Optional[str] = None
    doctor_contact: Optional[str] = None
    verification_document_url: Optional[str] = None


class VerifyAllergyRequest(BaseModel):
    """Body for POST /allergies/{record_id}/verify."""

    doctor_name: str = Field(..., min_length=1)
    doctor_contact: Optional[str] = None
    verification_document_url: Optional[str] = None


class AllergenRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    severity: Severity
    is_active: bool


class StudentAllergyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    allergen_id: str
    allergen: Optional[AllergenRead] = None
    description: Optional[str]
    severity: Severity
    doctor_name: Optional[str]
    doctor_contact: Optional[str]
    verification_document_url: Optional[str]
    verified_by: Optional[str]
    verified_at: Optional[datetime]
    is_verified: bool
    is_active: bool
    created_at: datetime
