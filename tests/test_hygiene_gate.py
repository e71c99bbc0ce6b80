# tests/test_hygiene_gate.py
import uuid
from datetime import timedelta

import pytest

from mealgate.errors import NotFoundError, ValidationFailed
from mealgate.models import HygieneStatus
from mealgate.schemas.admission import Gate
from mealgate.schemas.hygiene import HygieneCheckCreate
from mealgate.models.hygiene import SCORE_FIELDS
from mealgate.services.hygiene_gate import NO_CHECK_TODAY_REASON, months_before, overall_score
from tests.conftest import TODAY, record_hygiene


def test_overall_score_rounds_half_up():
    assert overall_score([24, 25, 25, 25, 25, 25, 25, 26]) == 25
    assert overall_score([24, 24, 24, 24, 25, 25, 25, 25]) == 25   # 24.5
    assert overall_score([24, 24, 24, 24, 24, 24, 24, 25]) == 24


def test_months_before_clamps_day():
    assert months_before(TODAY.replace(month=5, day=31), 3).isoformat() == "2025-02-28"


async def test_no_check_today_blocks(db, services, world):
    decision = await services.hygiene.can_kitchen_serve(db, world.kitchen_id, world.tenant_id)

    assert decision.allowed is False
    assert decision.gate == Gate.HYGIENE
    assert decision.reason == NO_CHECK_TODAY_REASON


async def test_yesterdays_check_does_not_count(db, services, world):
    await record_hygiene(db, services, world, score=45, check_date=TODAY - timedelta(days=1))

    decision = await services.hygiene.can_kitchen_serve(db, world.kitchen_id, world.tenant_id)

    assert decision.allowed is False


async def test_passing_check_allows(db, services, world):
    check = await record_hygiene(db, services, world, score=25)
    assert check.status == HygieneStatus.PASS

    decision = await services.hygiene.can_kitchen_serve(db, world.kitchen_id, world.tenant_id)

    assert decision.allowed is True


async def test_failing_check_blocks_with_score(db, services, world):
    check = await record_hygiene(db, services, world, score=20)
    assert check.status == HygieneStatus.FAIL

    decision = await services.hygiene.can_kitchen_serve(db, world.kitchen_id, world.tenant_id)

    assert decision.allowed is False
    assert decision.reason == "Hygiene check failed with score 20/50. Minimum required: 25/50"


async def test_latest_check_today_wins(db, services, world):
    await record_hygiene(db, services, world, score=10)
    await record_hygiene(db, services, world, score=40)

    decision = await services.hygiene.can_kitchen_serve(db, world.kitchen_id, world.tenant_id)

    assert decision.allowed is True


async def test_unknown_kitchen_is_not_found(db, services, world):
    with pytest.raises(NotFoundError):
        await services.hygiene.can_kitchen_serve(db, str(uuid.uuid4()), world.tenant_id)


async def test_scores_above_scale_rejected(db, services, world):
    body = HygieneCheckCreate(**{name: 40 for name in SCORE_FIELDS})
    body.cleanliness_score = 51

    with pytest.raises(ValidationFailed):
        await services.hygiene.record_check(db, world.kitchen_id, body, world.tenant_id)


async def test_check_date_defaults_to_today(db, services, world):
    body = HygieneCheckCreate(**{name: 30 for name in SCORE_FIELDS})

    check = await services.hygiene.record_check(db, world.kitchen_id, body, world.tenant_id)

    assert check.check_date == TODAY


async def test_record_correction_sets_deadline(db, services, world):
    check = await record_hygiene(db, services, world, score=20)

    updated = await services.hygiene.record_correction(
        db, check.id, "Deep clean scheduled", world.tenant_id
    )

    assert updated.correction_status == "Deep clean scheduled"
    assert updated.correction_deadline is not None
    assert (updated.correction_deadline - updated.created_at).days in (6, 7)


async def test_compliance_report_improving(db, services, world):
    for days_ago, score in [(40, 20), (30, 22), (20, 40), (10, 44)]:
        await record_hygiene(db, services, world, score=score, check_date=TODAY - timedelta(days=days_ago))

    report = await services.hygiene.compliance_report(db, world.kitchen_id, world.tenant_id)

    assert report.total_checks == 4
    assert report.passed_checks == 2
    assert report.failed_checks == 2
    assert report.compliance_percentage == 50
    assert report.average_score == 32     # 31.5 rounds up
    assert report.trend == "IMPROVING"
    assert report.latest_check.overall_score == 44


async def test_compliance_report_declining_and_window(db, services, world):
    await record_hygiene(db, services, world, score=48, check_date=TODAY - timedelta(days=200))
    for days_ago, score in [(50, 45), (40, 44), (20, 30), (5, 28)]:
        await record_hygiene(db, services, world, score=score, check_date=TODAY - timedelta(days=days_ago))

    report = await services.hygiene.compliance_report(db, world.kitchen_id, world.tenant_id, months=3)

    assert report.total_checks == 4
    assert report.trend == "DECLINING"


async def test_compliance_report_empty(db, services, world):
    report = await services.hygiene.compliance_report(db, world.kitchen_id, world.tenant_id)

    assert report.total_checks == 0
    assert report.compliance_percentage == 0
    assert report.trend == "STABLE"
    assert report.latest_check is None
