# tests/test_approval_gate.py
import pytest
from sqlalchemy import update

from mealgate.errors import InvalidTransition, ValidationFailed
from mealgate.models import Menu, MenuStatus
from mealgate.schemas.admission import Gate


async def _set_menu_status(db, world, status):
    await db.execute(update(Menu).where(Menu.id == world.menu_id).values(status=status))
    await db.commit()


@pytest.mark.parametrize(
    "status", [MenuStatus.DRAFT, MenuStatus.PENDING_APPROVAL, MenuStatus.REJECTED]
)
async def test_only_approved_menus_pass(services, status):
    decision = services.approval.evaluate(Menu(status=status))

    assert decision.allowed is False
    assert decision.gate == Gate.APPROVAL
    assert decision.reason == f"Menu status is {status.value}. Only APPROVED menus can be served."


async def test_approved_menu_passes(services):
    assert services.approval.evaluate(Menu(status=MenuStatus.APPROVED)).allowed is True


async def test_submit_attaches_allergen_warnings(db, services, world):
    await _set_menu_status(db, world, MenuStatus.DRAFT)

    approval = await services.approval.submit(db, world.menu_id, "chef-1", world.tenant_id, notes="Week 10")

    assert approval.status == MenuStatus.PENDING_APPROVAL
    assert approval.allergen_warnings == [
        "WARNING: Peanut (ANAPHYLAXIS) detected",
        "WARNING: Shellfish (SEVERE) detected",
    ]
    menu = await services.approval.get_menu(db, world.menu_id, world.tenant_id)
    assert menu.status == MenuStatus.PENDING_APPROVAL
    assert [a.id for a in await services.approval.pending(db, world.tenant_id)] == [approval.id]


async def test_approve_flow(db, services, world):
    await _set_menu_status(db, world, MenuStatus.DRAFT)
    approval = await services.approval.submit(db, world.menu_id, "chef-1", world.tenant_id)

    approved = await services.approval.approve(db, approval.id, "manager-1", world.tenant_id)

    assert approved.status == MenuStatus.APPROVED
    assert approved.resolved_by == "manager-1"
    menu = await services.approval.get_menu(db, world.menu_id, world.tenant_id)
    assert services.approval.evaluate(menu).allowed is True
    assert await services.approval.pending(db, world.tenant_id) == []


async def test_reject_then_resubmit(db, services, world):
    await _set_menu_status(db, world, MenuStatus.DRAFT)
    first = await services.approval.submit(db, world.menu_id, "chef-1", world.tenant_id)

    rejected = await services.approval.reject(
        db, first.id, "manager-1", "Too much peanut", world.tenant_id
    )
    assert rejected.rejection_reason == "Too much peanut"

    second = await services.approval.submit(db, world.menu_id, "chef-1", world.tenant_id)
    assert second.id != first.id
    latest = await services.approval.get_for_menu(db, world.menu_id, world.tenant_id)
    assert latest.id == second.id


async def test_reject_requires_reason(db, services, world):
    await _set_menu_status(db, world, MenuStatus.DRAFT)
    approval = await services.approval.submit(db, world.menu_id, "chef-1", world.tenant_id)

    with pytest.raises(ValidationFailed):
        await services.approval.reject(db, approval.id, "manager-1", "  ", world.tenant_id)


async def test_illegal_transitions(db, services, world):
    # world's menu starts APPROVED
    with pytest.raises(InvalidTransition):
        await services.approval.submit(db, world.menu_id, "chef-1", world.tenant_id)

    await _set_menu_status(db, world, MenuStatus.DRAFT)
    approval = await services.approval.submit(db, world.menu_id, "chef-1", world.tenant_id)
    await services.approval.approve(db, approval.id, "manager-1", world.tenant_id)

    with pytest.raises(InvalidTransition):
        await services.approval.approve(db, approval.id, "manager-1", world.tenant_id)
    with pytest.raises(InvalidTransition):
        await services.approval.reject(db, approval.id, "manager-1", "late", world.tenant_id)
