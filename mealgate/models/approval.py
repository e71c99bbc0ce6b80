"""Menu approval workflow ORM model."""

import enum

from sqlalchemy import Column, Enum, ForeignKey, Index, String, Text, TIMESTAMP

from mealgate.database import Base, JSONType, new_id, utcnow


class MenuStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class MenuApproval(Base):
    """
    One submission of a menu for manager approval. A rejected menu may be
    submitted again, which creates a new row; resolved rows are kept.
    """

    __tablename__ = "menu_approvals"
    __table_args__ = (
        Index("ix_menu_approvals_tenant_status", "tenant_id", "status"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(64), nullable=False)
    menu_id = Column(
        String(36), ForeignKey("menus.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(
        Enum(MenuStatus, native_enum=False, length=20),
        nullable=False,
        default=MenuStatus.PENDING_APPROVAL,
    )

    submitted_by = Column(String(64), nullable=False)
    submitted_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    resolved_by = Column(String(64), nullable=True)
    resolved_at = Column(TIMESTAMP(timezone=True), nullable=True)

    notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    allergen_warnings = Column(JSONType, nullable=False, default=list)
