"""Wires the gate services together once per process."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mealgate.config import Settings, get_settings
from mealgate.services.admission import AdmissionService
from mealgate.services.allergen_index import IngredientAllergenIndex
from mealgate.services.allergy_guard import AllergenSafetyEvaluator
from mealgate.services.allergy_registry import AllergyRegistry
from mealgate.services.approval_gate import ApprovalGate
from mealgate.services.audit_log import AuditLog
from mealgate.services.hygiene_gate import HygieneGate
from mealgate.services.meal_service import MealService
from mealgate.services.override_authority import OverrideAuthority


@dataclass
class Services:
    registry: AllergyRegistry
    index: IngredientAllergenIndex
    audit_log: AuditLog
    evaluator: AllergenSafetyEvaluator
    overrides: OverrideAuthority
    hygiene: HygieneGate
    approval: ApprovalGate
    admission: AdmissionService
    meals: MealService


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
    clock: Callable[[], date] = date.today,
) -> Services:
    """
    Build the service graph. The session factory is only used by the audit
    log, which writes outside the request's session.
    """
    settings = settings or get_settings()

    registry = AllergyRegistry()
    index = IngredientAllergenIndex()
    audit_log = AuditLog(session_factory, max_history_limit=settings.audit_history_max_limit)
    evaluator = AllergenSafetyEvaluator(registry, index, audit_log)
    overrides = OverrideAuthority(evaluator)
    hygiene = HygieneGate(settings, clock=clock)
    approval = ApprovalGate(index)
    admission = AdmissionService(hygiene, approval, evaluator, index, registry)
    meals = MealService(registry, index, admission, overrides)

    return Services(
        registry=registry,
        index=index,
        audit_log=audit_log,
        evaluator=evaluator,
        overrides=overrides,
        hygiene=hygiene,
        approval=approval,
        admission=admission,
        meals=meals,
    )
