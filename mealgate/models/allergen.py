"""Allergen and student allergy ORM models."""

from sqlalchemy import (
    Boolean, Column, Enum, ForeignKey, Index, String, Text, TIMESTAMP,
)
from sqlalchemy.orm import relationship

from mealgate.database import Base, new_id, utcnow
from mealgate.utils.allergy_data import Severity


class Allergen(Base):
    """
    Tenant-scoped allergen with an intrinsic severity tier.
    The tier drives the serving policy; only administrators change it, and
    never through this service. Allergens are soft-deactivated, not deleted.
    """

    __tablename__ = "allergens"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(Text, nullable=False)
    severity = Column(Enum(Severity, native_enum=False, length=20), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)


class StudentAllergy(Base):
    """
    A student's claimed allergy. Inert for meal safety until a doctor-backed
    verification flips is_verified; rejection deactivates it permanently but
    the row is kept for audit.
    """

    __tablename__ = "student_allergies"
    __table_args__ = (
        Index(
            "ix_student_allergies_lookup",
            "tenant_id", "student_id", "is_verified", "is_active",
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False)
    student_id = Column(
        String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    allergen_id = Column(
        String(36), ForeignKey("allergens.id", ondelete="RESTRICT"), nullable=False
    )

    description = Column(Text, nullable=True)
    # Personal reaction; may be milder or harsher than the allergen's own tier
    severity = Column(
        Enum(Severity, native_enum=False, length=20),
        nullable=False,
        default=Severity.MODERATE,
    )

    # Doctor-backed verification
    doctor_name = Column(Text, nullable=True)
    doctor_contact = Column(Text, nullable=True)
    verification_document_url = Column(Text, nullable=True)
    verified_by = Column(String(64), nullable=True)
    verified_at = Column(TIMESTAMP(timezone=True), nullable=True)

    is_verified = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    allergen = relationship("Allergen", lazy="joined")
