# tests/conftest.py
import os
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

os.environ.setdefault("SERVICE_TOKEN", "test-service-token")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mealgate.config import Settings, settings
from mealgate.database import Base, get_db
from mealgate.models import (
    Allergen,
    FoodItem,
    FoodItemAllergen,
    Kitchen,
    Meal,
    MealVariant,
    Menu,
    MenuStatus,
    Recipe,
    RecipeIngredient,
    Student,
    StudentAllergy,
)
from mealgate.schemas.hygiene import HygieneCheckCreate
from mealgate.models.hygiene import SCORE_FIELDS
from mealgate.services.container import build_services
from mealgate.utils.allergy_data import Severity

TENANT = "school-1"
OTHER_TENANT = "school-2"
TODAY = date(2025, 3, 3)


@pytest.fixture
async def engine(tmp_path):
    # A file database so the audit log's own session sees a separate connection.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def test_settings():
    return Settings(
        service_token=settings.service_token,
        hygiene_pass_score=25,
        hygiene_item_max=50,
        hygiene_correction_days=7,
    )


@pytest.fixture
def services(session_factory, test_settings):
    return build_services(session_factory, test_settings, clock=lambda: TODAY)


@pytest.fixture
async def world(db):
    """
    One school with a kitchen, an approved menu for TODAY, one meal and a
    variant per recipe:

        peanut    Peanut butter (Peanut/ANAPHYLAXIS) + Rice
        shellfish Prawns (Shellfish/SEVERE) + Rice
        dairy     Paneer (Milk/MILD) + Roti (Gluten/MODERATE)
        mixed     Prawns + Paneer + Peanut oil (Peanut)
        plain     Rice
        no_recipe (variant without a recipe)
    """
    w = SimpleNamespace()

    student = Student(tenant_id=TENANT, name="Asha")
    other_student = Student(tenant_id=TENANT, name="Ravi")
    kitchen = Kitchen(tenant_id=TENANT, name="Main mess")
    db.add_all([student, other_student, kitchen])
    await db.flush()

    menu = Menu(tenant_id=TENANT, kitchen_id=kitchen.id, menu_date=TODAY, status=MenuStatus.APPROVED)
    db.add(menu)
    await db.flush()
    meal = Meal(tenant_id=TENANT, menu_id=menu.id, name="Lunch", meal_type="LUNCH")
    db.add(meal)
    await db.flush()

    allergens = {
        "peanut": Allergen(tenant_id=TENANT, name="Peanut", severity=Severity.ANAPHYLAXIS),
        "shellfish": Allergen(tenant_id=TENANT, name="Shellfish", severity=Severity.SEVERE),
        "milk": Allergen(tenant_id=TENANT, name="Milk", severity=Severity.MILD),
        "gluten": Allergen(tenant_id=TENANT, name="Gluten", severity=Severity.MODERATE),
    }
    db.add_all(allergens.values())

    foods = {
        "peanut_butter": FoodItem(tenant_id=TENANT, name="Peanut butter"),
        "peanut_oil": FoodItem(tenant_id=TENANT, name="Peanut oil"),
        "prawns": FoodItem(tenant_id=TENANT, name="Prawns"),
        "paneer": FoodItem(tenant_id=TENANT, name="Paneer"),
        "roti": FoodItem(tenant_id=TENANT, name="Roti"),
        "rice": FoodItem(tenant_id=TENANT, name="Rice"),
    }
    db.add_all(foods.values())
    await db.flush()

    links = [
        ("peanut_butter", "peanut"),
        ("peanut_oil", "peanut"),
        ("prawns", "shellfish"),
        ("paneer", "milk"),
        ("roti", "gluten"),
    ]
    db.add_all(
        FoodItemAllergen(food_item_id=foods[f].id, allergen_id=allergens[a].id) for f, a in links
    )

    recipes_spec = {
        "peanut": ["peanut_butter", "rice"],
        "shellfish": ["prawns", "rice"],
        "dairy": ["paneer", "roti"],
        "mixed": ["prawns", "paneer", "peanut_oil"],
        "plain": ["rice"],
    }
    recipes = {}
    for key, items in recipes_spec.items():
        recipe = Recipe(tenant_id=TENANT, name=f"{key} recipe")
        db.add(recipe)
        await db.flush()
        db.add_all(
            RecipeIngredient(recipe_id=recipe.id, food_item_id=foods[i].id, quantity=Decimal("1"))
            for i in items
        )
        recipes[key] = recipe

    variants = {}
    for key, recipe in recipes.items():
        variants[key] = MealVariant(
            tenant_id=TENANT, meal_id=meal.id, recipe_id=recipe.id,
            variant_type=key.upper(), cost=Decimal("40.00"),
        )
    variants["no_recipe"] = MealVariant(
        tenant_id=TENANT, meal_id=meal.id, recipe_id=None, variant_type="FRUIT", cost=Decimal("10.00"),
    )
    db.add_all(variants.values())
    await db.commit()

    w.tenant_id = TENANT
    w.student_id = student.id
    w.other_student_id = other_student.id
    w.kitchen_id = kitchen.id
    w.menu_id = menu.id
    w.meal_id = meal.id
    w.allergen = {k: a.id for k, a in allergens.items()}
    w.variant = {k: v.id for k, v in variants.items()}
    return w


async def add_allergy(
    db,
    world,
    allergen_key,
    *,
    student_id=None,
    severity=Severity.MODERATE,
    verified=True,
    active=True,
):
    record = StudentAllergy(
        tenant_id=world.tenant_id,
        student_id=student_id or world.student_id,
        allergen_id=world.allergen[allergen_key],
        severity=severity,
        is_verified=verified,
        is_active=active,
        doctor_name="Dr. Rao" if verified else None,
        doctor_contact="+91-9000000000" if verified else None,
    )
    db.add(record)
    await db.commit()
    return record


async def record_hygiene(db, services, world, score=40, check_date=TODAY):
    body = HygieneCheckCreate(
        check_date=check_date,
        inspector_name="Inspector Mehta",
        **{name: score for name in SCORE_FIELDS},
    )
    return await services.hygiene.record_check(db, world.kitchen_id, body, world.tenant_id)


@pytest.fixture
def headers():
    return {
        "X-Service-Token": settings.service_token,
        "X-Tenant-ID": TENANT,
        "X-User-ID": "manager-1",
    }


@pytest.fixture
async def client(services, session_factory):
    from mealgate.main import app

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.state.services = services
    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    app.state.services = None
