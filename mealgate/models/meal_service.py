"""Attendance and meal-choice records created behind the admission gates."""

import enum

from sqlalchemy import (
    Boolean, Column, Date, Enum, ForeignKey, String, Text, TIMESTAMP,
    UniqueConstraint,
)

from mealgate.database import Base, new_id, utcnow


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"


class MealAttendance(Base):
    __tablename__ = "meal_attendance"
    __table_args__ = (
        UniqueConstraint("student_id", "meal_id", name="uq_meal_attendance_student_meal"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    student_id = Column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    meal_id = Column(
        String(36), ForeignKey("meals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    variant_id = Column(
        String(36), ForeignKey("meal_variants.id", ondelete="SET NULL"), nullable=True
    )
    status = Column(Enum(AttendanceStatus, native_enum=False, length=10), nullable=False)
    attendance_date = Column(Date, nullable=False)

    # True only when the allergen gate itself reported safe
    allergy_verified = Column(Boolean, nullable=False, default=False)
    override_id = Column(String(36), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class MealChoice(Base):
    __tablename__ = "meal_choices"
    __table_args__ = (
        UniqueConstraint("student_id", "variant_id", name="uq_meal_choice_student_variant"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    student_id = Column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    variant_id = Column(
        String(36), ForeignKey("meal_variants.id", ondelete="CASCADE"), nullable=False
    )
    allergy_verified = Column(Boolean, nullable=False, default=False)
    override_id = Column(String(36), nullable=True)
    verification_notes = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
