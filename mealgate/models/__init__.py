"""SQLAlchemy ORM models package."""

from mealgate.database import Base
from mealgate.models.approval import MenuApproval, MenuStatus
from mealgate.models.allergen import Allergen, StudentAllergy
from mealgate.models.audit import AllergenCheckLog, AllergenOverride, CheckOutcome
from mealgate.models.catalog import (
    FoodItem,
    FoodItemAllergen,
    Kitchen,
    Meal,
    MealVariant,
    Menu,
    Recipe,
    RecipeIngredient,
    Student,
)
from mealgate.models.hygiene import HygieneCheck, HygieneStatus
from mealgate.models.meal_service import AttendanceStatus, MealAttendance, MealChoice

__all__ = [
    "Base",
    "Student", "Kitchen", "Menu", "Meal", "MealVariant",
    "Recipe", "RecipeIngredient", "FoodItem", "FoodItemAllergen",
    "Allergen", "StudentAllergy",
    "HygieneCheck", "HygieneStatus",
    "MenuApproval", "MenuStatus",
    "AllergenCheckLog", "AllergenOverride", "CheckOutcome",
    "MealAttendance", "MealChoice", "AttendanceStatus",
]
