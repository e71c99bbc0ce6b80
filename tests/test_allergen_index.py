# tests/test_allergen_index.py
import uuid

import pytest
from sqlalchemy import update

from mealgate.errors import NotFoundError
from mealgate.models import Allergen
from mealgate.utils.allergy_data import Severity


async def test_exposure_lists_allergens_with_food_items(db, services, world):
    exposure = await services.index.exposure(db, world.variant["mixed"], world.tenant_id)

    assert set(exposure) == {
        world.allergen["peanut"], world.allergen["shellfish"], world.allergen["milk"],
    }
    peanut = exposure[world.allergen["peanut"]]
    assert peanut.allergen_name == "Peanut"
    assert peanut.severity == Severity.ANAPHYLAXIS
    assert peanut.food_items == ["Peanut oil"]


async def test_variant_without_allergens_has_empty_exposure(db, services, world):
    assert await services.index.exposure(db, world.variant["plain"], world.tenant_id) == {}
    assert await services.index.exposure(db, world.variant["no_recipe"], world.tenant_id) == {}


async def test_unknown_variant_is_not_found(db, services, world):
    with pytest.raises(NotFoundError):
        await services.index.exposure(db, str(uuid.uuid4()), world.tenant_id)


async def test_deactivated_allergen_is_still_exposure(db, services, world):
    await db.execute(
        update(Allergen).where(Allergen.id == world.allergen["shellfish"]).values(is_active=False)
    )
    await db.commit()

    exposure = await services.index.exposure(db, world.variant["shellfish"], world.tenant_id)

    assert world.allergen["shellfish"] in exposure


async def test_menu_warnings_cover_severe_and_anaphylaxis_only(db, services, world):
    warnings = await services.index.menu_allergen_warnings(db, world.menu_id, world.tenant_id)

    assert warnings == [
        "WARNING: Peanut (ANAPHYLAXIS) detected",
        "WARNING: Shellfish (SEVERE) detected",
    ]
