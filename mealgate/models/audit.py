"""Allergen audit trail ORM models — append-only by construction."""

import enum

from sqlalchemy import (
    BigInteger, Boolean, Column, Enum, Index, Integer, String, Text, TIMESTAMP,
)

from mealgate.database import Base, JSONType, new_id, utcnow


class CheckOutcome(str, enum.Enum):
    EVALUATED = "EVALUATED"
    NOT_FOUND = "NOT_FOUND"
    FAILED_CLOSED = "FAILED_CLOSED"


class AllergenCheckLog(Base):
    """
    One row per allergen evaluation, whatever the outcome. Nothing in the
    codebase updates or deletes these rows; they are retained for compliance.
    """

    __tablename__ = "allergen_check_logs"
    __table_args__ = (
        Index("ix_allergen_check_logs_student", "tenant_id", "student_id"),
    )

    # INTEGER PRIMARY KEY on SQLite is the only autoincrementing form
    id = Column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    tenant_id = Column(String(64), nullable=False)
    student_id = Column(String(36), nullable=False)
    variant_id = Column(String(36), nullable=False, index=True)

    outcome = Column(Enum(CheckOutcome, native_enum=False, length=20), nullable=False)
    safe = Column(Boolean, nullable=False)
    requires_override = Column(Boolean, nullable=False, default=False)
    conflicting_allergens = Column(JSONType, nullable=False, default=list)
    reason = Column(Text, nullable=True)

    checked_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)


class AllergenOverride(Base):
    """
    A manager's recorded acceptance of residual risk for a SEVERE conflict.
    Advisory: serving staff consult it, the evaluator never does.
    """

    __tablename__ = "allergen_overrides"
    __table_args__ = (
        Index("ix_allergen_overrides_pair", "tenant_id", "student_id", "variant_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False)
    student_id = Column(String(36), nullable=False)
    variant_id = Column(String(36), nullable=False)
    authorized_by = Column(String(64), nullable=False)
    reason = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
