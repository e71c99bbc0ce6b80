"""
IngredientAllergenIndex — derives the allergens a meal variant exposes a
student to by walking

    variant → recipe → recipe_ingredients → food_items → food_item_allergens → allergens

Zero tolerance: ingredient quantity is ignored, a trace ingredient flags its
allergens exactly like a main one. Read-only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.errors import NotFoundError
from mealgate.models import (
    Allergen,
    FoodItem,
    FoodItemAllergen,
    Meal,
    MealVariant,
    Menu,
    RecipeIngredient,
)
from mealgate.utils.allergy_data import (
    MENU_WARNING_SEVERITIES,
    MENU_WARNING_TEMPLATE,
    Severity,
)

logger = logging.getLogger(__name__)


@dataclass
class AllergenExposure:
    """One allergen present in a variant and the food items that introduce it."""

    allergen_id: str
    allergen_name: str
    severity: Severity
    food_items: list[str] = field(default_factory=list)


class IngredientAllergenIndex:
    """Answers "which allergens are in this variant, and from which ingredients?"."""

    async def get_variant(self, db: AsyncSession, variant_id: str, tenant_id: str) -> MealVariant:
        result = await db.execute(
            select(MealVariant).where(
                MealVariant.id == variant_id, MealVariant.tenant_id == tenant_id
            )
        )
        variant = result.scalar_one_or_none()
        if variant is None:
            raise NotFoundError("Meal variant", variant_id)
        return variant

    async def exposure(
        self, db: AsyncSession, variant_id: str, tenant_id: str
    ) -> dict[str, AllergenExposure]:
        """
        Map allergen_id → AllergenExposure for the variant.

        Raises NotFoundError when the variant does not exist in the tenant.
        A variant without a recipe, or whose recipe has no ingredients, is
        allergen-free by vacuity and yields an empty mapping.
        """
        variant = await self.get_variant(db, variant_id, tenant_id)
        if variant.recipe_id is None:
            return {}
        return await self.recipe_exposure(db, variant.recipe_id)

    async def recipe_exposure(
        self, db: AsyncSession, recipe_id: str
    ) -> dict[str, AllergenExposure]:
        # Deactivated allergens are still physically in the food; no is_active filter.
        rows = await db.execute(
            select(
                Allergen.id,
                Allergen.name,
                Allergen.severity,
                FoodItem.name,
            )
            .select_from(RecipeIngredient)
            .join(FoodItem, FoodItem.id == RecipeIngredient.food_item_id)
            .join(FoodItemAllergen, FoodItemAllergen.food_item_id == FoodItem.id)
            .join(Allergen, Allergen.id == FoodItemAllergen.allergen_id)
            .where(RecipeIngredient.recipe_id == recipe_id)
            .order_by(Allergen.name, FoodItem.name)
        )

        exposures: dict[str, AllergenExposure] = {}
        for allergen_id, allergen_name, severity, food_item_name in rows.all():
            entry = exposures.get(allergen_id)
            if entry is None:
                entry = AllergenExposure(
                    allergen_id=allergen_id,
                    allergen_name=allergen_name,
                    severity=severity,
                )
                exposures[allergen_id] = entry
            if food_item_name not in entry.food_items:
                entry.food_items.append(food_item_name)
        return exposures

    async def menu_allergen_warnings(
        self, db: AsyncSession, menu_id: str, tenant_id: str
    ) -> list[str]:
        """
        Warnings for every SEVERE/ANAPHYLAXIS allergen reachable from any
        variant of any meal on the menu. Attached to menu approval requests so
        the approving manager sees them.
        """
        menu = (
            await db.execute(select(Menu).where(Menu.id == menu_id, Menu.tenant_id == tenant_id))
        ).scalar_one_or_none()
        if menu is None:
            raise NotFoundError("Menu", menu_id)

        recipe_ids = (
            await db.execute(
                select(MealVariant.recipe_id)
                .join(Meal, Meal.id == MealVariant.meal_id)
                .where(Meal.menu_id == menu_id, MealVariant.recipe_id.is_not(None))
                .distinct()
            )
        ).scalars().all()

        flagged: dict[str, AllergenExposure] = {}
        for recipe_id in recipe_ids:
            for allergen_id, entry in (await self.recipe_exposure(db, recipe_id)).items():
                if entry.severity in MENU_WARNING_SEVERITIES:
                    flagged.setdefault(allergen_id, entry)

        ordered = sorted(
            flagged.values(),
            key=lambda e: (-e.severity.rank, e.allergen_name),
        )
        return [
            MENU_WARNING_TEMPLATE.format(name=e.allergen_name, severity=e.severity.value)
            for e in ordered
        ]
