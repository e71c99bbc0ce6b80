# tests/test_allergy_registry.py
import uuid

import pytest

from mealgate.errors import InvalidTransition, NotFoundError, ValidationFailed
from mealgate.schemas.allergy import StudentAllergyCreate, VerifyAllergyRequest
from mealgate.utils.allergy_data import Severity
from tests.conftest import OTHER_TENANT


async def _claim(db, services, world, allergen_key="shellfish"):
    body = StudentAllergyCreate(
        student_id=uuid.UUID(world.student_id),
        allergen_id=uuid.UUID(world.allergen[allergen_key]),
        severity=Severity.SEVERE,
        description="Hives after prawns",
    )
    return await services.registry.create(db, body, world.tenant_id)


async def test_new_claim_starts_unverified_and_inert(db, services, world):
    record = await _claim(db, services, world)

    assert record.is_verified is False
    assert record.is_active is True
    result = await services.evaluator.check_variant(
        db, world.student_id, world.variant["shellfish"], world.tenant_id
    )
    assert result.safe is True


async def test_verify_makes_claim_count(db, services, world):
    record = await _claim(db, services, world)

    verified = await services.registry.verify(
        db,
        record.id,
        VerifyAllergyRequest(doctor_name="Dr. Rao", doctor_contact="+91-9000000000"),
        "nurse-1",
        world.tenant_id,
    )

    assert verified.is_verified is True
    assert verified.verified_by == "nurse-1"
    assert verified.verified_at is not None
    result = await services.evaluator.check_variant(
        db, world.student_id, world.variant["shellfish"], world.tenant_id
    )
    assert result.safe is False


async def test_verify_needs_contact_or_document(db, services, world):
    record = await _claim(db, services, world)

    with pytest.raises(ValidationFailed):
        await services.registry.verify(
            db, record.id, VerifyAllergyRequest(doctor_name="Dr. Rao"), "nurse-1", world.tenant_id
        )


async def test_verify_rejects_blank_doctor_name(db, services, world):
    record = await _claim(db, services, world)

    with pytest.raises(ValidationFailed):
        await services.registry.verify(
            db,
            record.id,
            VerifyAllergyRequest(doctor_name="   ", verification_document_url="https://docs/1.pdf"),
            "nurse-1",
            world.tenant_id,
        )


async def test_rejected_claim_cannot_be_verified(db, services, world):
    record = await _claim(db, services, world)
    rejected = await services.registry.reject(db, record.id, "nurse-1", world.tenant_id)
    assert rejected.is_active is False

    with pytest.raises(InvalidTransition):
        await services.registry.verify(
            db,
            record.id,
            VerifyAllergyRequest(doctor_name="Dr. Rao", doctor_contact="123"),
            "nurse-1",
            world.tenant_id,
        )


async def test_verified_claim_cannot_be_rejected_or_reverified(db, services, world):
    record = await _claim(db, services, world)
    body = VerifyAllergyRequest(doctor_name="Dr. Rao", doctor_contact="123")
    await services.registry.verify(db, record.id, body, "nurse-1", world.tenant_id)

    with pytest.raises(InvalidTransition):
        await services.registry.reject(db, record.id, "nurse-1", world.tenant_id)
    with pytest.raises(InvalidTransition):
        await services.registry.verify(db, record.id, body, "nurse-1", world.tenant_id)


async def test_deactivate_stops_evaluations_seeing_record(db, services, world):
    record = await _claim(db, services, world)
    await services.registry.verify(
        db, record.id, VerifyAllergyRequest(doctor_name="Dr. Rao", doctor_contact="123"),
        "nurse-1", world.tenant_id,
    )

    await services.registry.deactivate(db, record.id, world.tenant_id)

    result = await services.evaluator.check_variant(
        db, world.student_id, world.variant["shellfish"], world.tenant_id
    )
    assert result.safe is True
    with pytest.raises(InvalidTransition):
        await services.registry.deactivate(db, record.id, world.tenant_id)


async def test_list_hides_inactive_unless_asked(db, services, world):
    kept = await _claim(db, services, world, "milk")
    dropped = await _claim(db, services, world, "gluten")
    await services.registry.reject(db, dropped.id, "nurse-1", world.tenant_id)

    active = await services.registry.list_for_student(db, world.student_id, world.tenant_id)
    everything = await services.registry.list_for_student(
        db, world.student_id, world.tenant_id, include_inactive=True
    )

    assert [r.id for r in active] == [kept.id]
    assert {r.id for r in everything} == {kept.id, dropped.id}


async def test_records_are_tenant_scoped(db, services, world):
    record = await _claim(db, services, world)

    with pytest.raises(NotFoundError):
        await services.registry.get(db, record.id, OTHER_TENANT)


async def test_claim_for_unknown_allergen_is_not_found(db, services, world):
    body = StudentAllergyCreate(student_id=uuid.UUID(world.student_id), allergen_id=uuid.uuid4())
    with pytest.raises(NotFoundError):
        await services.registry.create(db, body, world.tenant_id)
