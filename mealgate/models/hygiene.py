"""Kitchen hygiene inspection ORM model."""

import enum

from sqlalchemy import (
    Column, Date, Enum, ForeignKey, Index, Integer, String, Text, TIMESTAMP,
)

from mealgate.database import Base, JSONType, new_id, utcnow


class HygieneStatus(str, enum.Enum):
    PASS = "PASS"
    FAIL = "FAIL"


# Checklist categories, each scored 0..HYGIENE_ITEM_MAX by the inspector
SCORE_FIELDS = (
    "cleanliness_score",
    "temperature_control_score",
    "equipment_maintenance_score",
    "storage_conditions_score",
    "water_quality_score",
    "waste_management_score",
    "staff_hygiene_score",
    "staff_lunch_assistant_score",
)


class HygieneCheck(Base):
    """
    Inspector-entered daily checklist for one kitchen. overall_score is the
    rounded average of the eight category scores; status is derived from it
    at write time.
    """

    __tablename__ = "hygiene_checks"
    __table_args__ = (
        Index("ix_hygiene_checks_kitchen_date", "kitchen_id", "check_date"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    kitchen_id = Column(
        String(36), ForeignKey("kitchens.id", ondelete="CASCADE"), nullable=False
    )
    check_date = Column(Date, nullable=False)
    inspector_name = Column(Text, nullable=True)
    inspector_signature = Column(Text, nullable=True)

    cleanliness_score = Column(Integer, nullable=False)
    temperature_control_score = Column(Integer, nullable=False)
    equipment_maintenance_score = Column(Integer, nullable=False)
    storage_conditions_score = Column(Integer, nullable=False)
    water_quality_score = Column(Integer, nullable=False)
    waste_management_score = Column(Integer, nullable=False)
    staff_hygiene_score = Column(Integer, nullable=False)
    staff_lunch_assistant_score = Column(Integer, nullable=False)

    overall_score = Column(Integer, nullable=False)
    status = Column(Enum(HygieneStatus, native_enum=False, length=10), nullable=False)

    issues_identified = Column(JSONType, nullable=False, default=list)
    correction_status = Column(Text, nullable=True)
    correction_deadline = Column(TIMESTAMP(timezone=True), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
