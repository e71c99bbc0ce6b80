"""Pydantic schemas for allergen checks, overrides and the audit trail."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from mealgate.models.audit import CheckOutcome
from mealgate.utils.allergy_data import Severity


class ConflictingAllergen(BaseModel):
    """One allergen present in the variant that the student is verified allergic to."""

    allergen_id: str
    allergen_name: str
    severity: Severity                 # allergen's intrinsic tier — drives the policy
    student_severity: Severity         # the student's recorded reaction
    ingredient_food_items: list[str] = Field(default_factory=list)


class AllergenCheckResult(BaseModel):
    """
    Verdict of the allergen safety evaluator for one student/variant pair.

    outcome tells the three cases apart: EVALUATED (safe may be either),
    NOT_FOUND (only ever inside a batch), FAILED_CLOSED (safe is always False).
    """

    student_id: str
    variant_id: str
    checked_at: datetime
    outcome: CheckOutcome = CheckOutcome.EVALUATED
    safe: bool
    conflicting_allergens: list[ConflictingAllergen] = Field(default_factory=list)
    requires_manager_override: bool = False
    block_reason: Optional[str] = None
    notes: Optional[str] = None


class CheckVariantRequest(BaseModel):
    """Body for POST /allergen-checks/check."""

    student_id: uuid.UUID
    variant_id: uuid.UUID


class BatchCheckRequest(BaseModel):
    """Body for POST /allergen-checks/batch."""

    student_id: uuid.UUID
    variant_ids: list[uuid.UUID] = Field(..., min_length=1, max_length=200)


class BatchCheckResponse(BaseModel):
    total: int
    safe: int
    unsafe: int
    results: list[AllergenCheckResult]


class VariantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    meal_id: str
    recipe_id: Optional[str] = None
    variant_type: str
    cost: float
    description: Optional[str] = None


class SafeVariant(BaseModel):
    """Entry of GET /allergen-checks/students/{student_id}/safe-variants."""

    variant: VariantRead
    result: AllergenCheckResult


class MealVariantSafety(BaseModel):
    """A meal's variant annotated for the serving counter."""

    variant: VariantRead
    is_safe: bool
    requires_override: bool
    conflicting_allergens: list[ConflictingAllergen] = Field(default_factory=list)
    block_reason: Optional[str] = None


class AllergenCheckLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: str
    student_id: str
    variant_id: str
    outcome: CheckOutcome
    safe: bool
    requires_override: bool
    conflicting_allergens: list[dict[str, Any]]
    reason: Optional[str]
    checked_at: datetime


class OverrideRequest(BaseModel):
    """
    Body for POST /allergen-checks/overrides.
    The authorizing manager is taken from X-User-ID, never from the body.
    Blank strings are rejected by the override authority, not here, so the
    error is reported with the same code as every other missing field.
    """

    student_id: Optional[str] = None
    variant_id: Optional[str] = None
    reason: Optional[str] = None


class OverrideOutcome(BaseModel):
    success: bool
    message: str
    override_id: Optional[str] = None


class OverrideRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    variant_id: str
    authorized_by: str
    reason: str
    created_at: datetime
