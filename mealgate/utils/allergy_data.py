"""
Canonical allergen severity definitions — single source of truth for all
allergy logic. Models, the evaluator and the API schemas import exclusively
from here.
"""

import enum


class Severity(str, enum.Enum):
    MILD = "MILD"
    MODERATE = "MODERATE"
    SEVERE = "SEVERE"
    ANAPHYLAXIS = "ANAPHYLAXIS"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


# Least to most dangerous
SEVERITY_LEVELS = [Severity.MILD, Severity.MODERATE, Severity.SEVERE, Severity.ANAPHYLAXIS]

SEVERITY_RANK: dict[Severity, int] = {level: i for i, level in enumerate(SEVERITY_LEVELS)}

# Tiers that still allow serving, with conflicts reported for staff awareness
NOTICE_SEVERITIES = frozenset({Severity.MILD, Severity.MODERATE})

# Verdict templates keyed by the most severe intrinsic severity matched.
# {allergens} is a comma-separated list of allergen names.
VERDICTS: dict[str, dict[str, str]] = {
    "ANAPHYLAXIS": {
        "block_reason": (
            "CRITICAL: Meal contains life-threatening allergen (ANAPHYLAXIS): "
            "{allergens}"
        ),
        "notes": "This meal CANNOT be served to this student under ANY circumstances",
    },
    "SEVERE": {
        "block_reason": (
            "Meal contains SEVERE allergen ({allergens}) - manager override required"
        ),
        "notes": "Contact manager/doctor before serving",
    },
    "NOTICE": {
        "notes": (
            "Meal safe to serve. Mild/moderate allergens present ({allergens}) - "
            "student aware"
        ),
    },
    "CLEAR": {
        "notes": "Meal safe to serve - no allergen conflicts",
    },
}

FAIL_CLOSED_REASON = (
    "Allergen checker could not complete the check - blocking as safety precaution"
)

VARIANT_NOT_FOUND_REASON = "Meal variant not found"

STUDENT_NOT_FOUND_REASON = "Student not found"

# Menu approval warnings are raised for these intrinsic tiers only
MENU_WARNING_SEVERITIES = frozenset({Severity.SEVERE, Severity.ANAPHYLAXIS})

MENU_WARNING_TEMPLATE = "WARNING: {name} ({severity}) detected"
