"""
AllergyRegistry — per-student allergy records and their verification
lifecycle.

    create ──> unverified/active ──verify──> verified/active ──deactivate──> inactive
                      │
                      └──reject──> unverified/inactive   (permanent)

Only verified AND active records are ever handed to the allergen evaluator.
Each transition is one conditional UPDATE so concurrent reviewers cannot
both win.
"""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mealgate.database import utcnow
from mealgate.errors import InvalidTransition, NotFoundError, ValidationFailed
from mealgate.models import Allergen, Student, StudentAllergy
from mealgate.schemas.allergy import StudentAllergyCreate, VerifyAllergyRequest

logger = logging.getLogger(__name__)


class AllergyRegistry:
    """Reads and writes StudentAllergy rows within one tenant."""

    async def require_student(self, db: AsyncSession, student_id: str, tenant_id: str) -> Student:
        result = await db.execute(
            select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id)
        )
        student = result.scalar_one_or_none()
        if student is None:
            raise NotFoundError("Student", student_id)
        return student

    async def verified_allergies(
        self, db: AsyncSession, student_id: str, tenant_id: str
    ) -> list[StudentAllergy]:
        """The only query the evaluator uses — verified and active, nothing else."""
        result = await db.execute(
            select(StudentAllergy).where(
                StudentAllergy.tenant_id == tenant_id,
                StudentAllergy.student_id == student_id,
                StudentAllergy.is_verified.is_(True),
                StudentAllergy.is_active.is_(True),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().unique().all())

    async def list_for_student(
        self,
        db: AsyncSession,
        student_id: str,
        tenant_id: str,
        include_inactive: bool = False,
    ) -> list[StudentAllergy]:
        """Every record for the student, verified or not, for the admin screens."""
        stmt = select(StudentAllergy).where(
            StudentAllergy.tenant_id == tenant_id,
            StudentAllergy.student_id == student_id,
        )
        if not include_inactive:
            stmt = stmt.where(StudentAllergy.is_active.is_(True))
        result = await db.execute(stmt.order_by(StudentAllergy.created_at))
        return list(result.scalars().unique().all())

    async def get(self, db: AsyncSession, record_id: str, tenant_id: str) -> StudentAllergy:
        # Transitions are bulk UPDATEs that bypass the identity map, so always
        # refresh attributes from the row.
        result = await db.execute(
            select(StudentAllergy)
            .where(StudentAllergy.id == record_id, StudentAllergy.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError("Student allergy record", record_id)
        return record

    async def create(
        self, db: AsyncSession, body: StudentAllergyCreate, tenant_id: str
    ) -> StudentAllergy:
        """Submit a new claim. It stays inert until verified."""
        student_id = str(body.student_id)
        allergen_id = str(body.allergen_id)
        await self.require_student(db, student_id, tenant_id)

        allergen = (
            await db.execute(
                select(Allergen).where(Allergen.id == allergen_id, Allergen.tenant_id == tenant_id)
            )
        ).scalar_one_or_none()
        if allergen is None:
            raise NotFoundError("Allergen", allergen_id)

        record = StudentAllergy(
            tenant_id=tenant_id,
            student_id=student_id,
            allergen_id=allergen_id,
            description=body.description,
            severity=body.severity,
            doctor_name=body.doctor_name,
            doctor_contact=body.doctor_contact,
            verification_document_url=body.verification_document_url,
            is_verified=False,
            is_active=True,
        )
        db.add(record)
        await db.commit()
        logger.info(
            "Allergy record %s submitted for student %s (allergen=%s, unverified)",
            record.id, student_id, allergen.name,
        )
        return await self.get(db, record.id, tenant_id)

    async def verify(
        self,
        db: AsyncSession,
        record_id: str,
        body: VerifyAllergyRequest,
        verified_by: str,
        tenant_id: str,
    ) -> StudentAllergy:
        """
        Doctor-backed verification. Needs a doctor name and either a contact
        number or a verification document; only unverified active records
        may be verified (a rejected record stays rejected).
        """
        doctor_name = (body.doctor_name or "").strip()
        contact = (body.doctor_contact or "").strip() or None
        document = (body.verification_document_url or "").strip() or None
        if not doctor_name:
            raise ValidationFailed("doctor_name is required to verify an allergy")
        if contact is None and document is None:
            raise ValidationFailed(
                "doctor_contact or verification_document_url is required to verify an allergy"
            )

        result = await db.execute(
            update(StudentAllergy)
            .where(
                StudentAllergy.id == record_id,
                StudentAllergy.tenant_id == tenant_id,
                StudentAllergy.is_verified.is_(False),
                StudentAllergy.is_active.is_(True),
            )
            .values(
                is_verified=True,
                doctor_name=doctor_name,
                doctor_contact=contact,
                verification_document_url=document,
                verified_by=verified_by,
                verified_at=utcnow(),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        if result.rowcount != 1:
            record = await self.get(db, record_id, tenant_id)
            state = "already verified" if record.is_verified else "rejected or inactive"
            raise InvalidTransition(f"Allergy record is {state} and cannot be verified")

        logger.info("Allergy record %s verified by %s (doctor=%s)", record_id, verified_by, doctor_name)
        return await self.get(db, record_id, tenant_id)

    async def reject(
        self, db: AsyncSession, record_id: str, rejected_by: str, tenant_id: str
    ) -> StudentAllergy:
        """Reject an unverified claim. Permanent; the row is kept for audit."""
        result = await db.execute(
            update(StudentAllergy)
            .where(
                StudentAllergy.id == record_id,
                StudentAllergy.tenant_id == tenant_id,
                StudentAllergy.is_verified.is_(False),
                StudentAllergy.is_active.is_(True),
            )
            .values(is_verified=False, is_active=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        if result.rowcount != 1:
            record = await self.get(db, record_id, tenant_id)
            state = "verified" if record.is_verified else "already inactive"
            raise InvalidTransition(f"Allergy record is {state} and cannot be rejected")

        logger.info("Allergy record %s rejected by %s", record_id, rejected_by)
        return await self.get(db, record_id, tenant_id)

    async def deactivate(
        self, db: AsyncSession, record_id: str, tenant_id: str
    ) -> StudentAllergy:
        """Retire a record that no longer applies. Evaluations stop seeing it."""
        result = await db.execute(
            update(StudentAllergy)
            .where(
                StudentAllergy.id == record_id,
                StudentAllergy.tenant_id == tenant_id,
                StudentAllergy.is_active.is_(True),
            )
            .values(is_active=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        if result.rowcount != 1:
            await self.get(db, record_id, tenant_id)
            raise InvalidTransition("Allergy record is already inactive")

        logger.info("Allergy record %s deactivated", record_id)
        return await self.get(db, record_id, tenant_id)
