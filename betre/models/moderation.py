"""Moderation models: reports on posts, comments and profiles, and user warnings."""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import relationship

from betre.core.roles import ReportStatus
from betre.db.session import Base


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        Index("ix_reports_target", "target_kind", "target_id"),
        Index("ix_reports_status_created", "status", "created_at"),
        # One pending report per reporter and target; reviewed ones drop out.
        Index(
            "uq_reports_pending_reporter_target",
            "reporter_id",
            "target_kind",
            "target_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    target_kind = Column(String(20), nullable=False)  # post | comment | profile
    target_id = Column(Uuid, nullable=False)
    # Owner of the reported content (or the reported profile itself)
    target_user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reporter_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=ReportStatus.PENDING.value)
    reviewed_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    target_user = relationship("User", foreign_keys=[target_user_id])
    reporter = relationship("User", foreign_keys=[reporter_id])


class ModerationWarning(Base):
    """Append-only record of a moderator warning."""
    __tablename__ = "warnings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Kept when the issuing moderator is deleted
    issuer_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reason = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id], back_populates="warnings")
    issuer = relationship("User", foreign_keys=[issuer_id])
