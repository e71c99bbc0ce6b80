"""
Catalog ORM models read by the gates.

Students, kitchens, menus, meals, variants, recipes and food items are owned
by other parts of the school platform; this service only reads them. The
allergen exposure of a variant is the union of the allergens linked to every
food item in its recipe.
"""

from sqlalchemy import (
    Column, Date, Enum, ForeignKey, Index, Integer, Numeric, String, Text,
    TIMESTAMP, UniqueConstraint,
)

from mealgate.database import Base, new_id, utcnow
from mealgate.models.approval import MenuStatus


class Student(Base):
    """Student directory entry — existence is all the gates need."""

    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)


class Kitchen(Base):
    """A mess kitchen; hygiene checks are recorded against it."""

    __tablename__ = "kitchens"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)


class Menu(Base):
    """A dated menu served from one kitchen."""

    __tablename__ = "menus"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    kitchen_id = Column(
        String(36), ForeignKey("kitchens.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    menu_date = Column(Date, nullable=False)
    status = Column(
        Enum(MenuStatus, native_enum=False, length=20),
        nullable=False,
        default=MenuStatus.DRAFT,
    )
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)


class Meal(Base):
    __tablename__ = "meals"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    menu_id = Column(
        String(36), ForeignKey("menus.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(Text, nullable=False)
    meal_type = Column(String(20), nullable=True)  # BREAKFAST | LUNCH | SNACKS | DINNER


class MealVariant(Base):
    """A servable option of a meal; bound to at most one recipe."""

    __tablename__ = "meal_variants"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    meal_id = Column(
        String(36), ForeignKey("meals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recipe_id = Column(
        String(36), ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True, index=True
    )
    variant_type = Column(String(30), nullable=False)  # VEG | NON_VEG | VEGAN | JAIN ...
    cost = Column(Numeric(10, 2), nullable=False, default=0)
    description = Column(Text, nullable=True)


class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(Text, nullable=False)
    servings = Column(Integer, nullable=False, default=1)


class FoodItem(Base):
    __tablename__ = "food_items"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(Text, nullable=False)


class RecipeIngredient(Base):
    """Quantity is informational only; allergen exposure ignores it."""

    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        UniqueConstraint("recipe_id", "food_item_id", name="uq_recipe_ingredient"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    recipe_id = Column(
        String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    food_item_id = Column(
        String(36), ForeignKey("food_items.id", ondelete="RESTRICT"), nullable=False
    )
    quantity = Column(Numeric(10, 3), nullable=True)
    unit = Column(String(20), nullable=True)


class FoodItemAllergen(Base):
    __tablename__ = "food_item_allergens"
    __table_args__ = (
        UniqueConstraint("food_item_id", "allergen_id", name="uq_food_item_allergen"),
        Index("ix_food_item_allergens_allergen", "allergen_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    food_item_id = Column(
        String(36), ForeignKey("food_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    allergen_id = Column(
        String(36), ForeignKey("allergens.id", ondelete="RESTRICT"), nullable=False
    )
