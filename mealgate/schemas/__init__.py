"""Pydantic schemas package."""

from mealgate.schemas.allergen import (
    AllergenCheckLogRead,
    AllergenCheckResult,
    BatchCheckRequest,
    BatchCheckResponse,
    CheckVariantRequest,
    ConflictingAllergen,
    MealVariantSafety,
    OverrideOutcome,
    OverrideRead,
    OverrideRequest,
    SafeVariant,
    VariantRead,
)
from mealgate.schemas.allergy import (
    AllergenRead,
    StudentAllergyCreate,
    StudentAllergyRead,
    VerifyAllergyRequest,
)
from mealgate.schemas.hygiene import (
    ComplianceReport,
    CorrectionRequest,
    HygieneCheckCreate,
    HygieneCheckRead,
)
from mealgate.schemas.approval import (
    ApproveRequest,
    MenuApprovalRead,
    MenuSubmitRequest,
    RejectRequest,
)
from mealgate.schemas.admission import (
    AdmissionDecision,
    AdmissionRequest,
    AdmissionStatus,
    AttendanceCreate,
    AttendanceRead,
    Gate,
    GateDecision,
    MealChoiceCreate,
    MealChoiceRead,
)

__all__ = [
    "AllergenCheckLogRead", "AllergenCheckResult", "BatchCheckRequest",
    "BatchCheckResponse", "CheckVariantRequest", "ConflictingAllergen",
    "MealVariantSafety", "OverrideOutcome", "OverrideRead", "OverrideRequest",
    "SafeVariant", "VariantRead",
    "AllergenRead", "StudentAllergyCreate", "StudentAllergyRead", "VerifyAllergyRequest",
    "ComplianceReport", "CorrectionRequest", "HygieneCheckCreate", "HygieneCheckRead",
    "ApproveRequest", "MenuApprovalRead", "MenuSubmitRequest", "RejectRequest",
    "AdmissionDecision", "AdmissionRequest", "AdmissionStatus", "AttendanceCreate",
    "AttendanceRead", "Gate", "GateDecision", "MealChoiceCreate", "MealChoiceRead",
]
