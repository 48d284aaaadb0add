"""Appointment model definitions."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid, func, text

from backend.database import Base

ACTIVE_STATUSES = ('scheduled', 'confirmed')

_ACTIVE_STATUS_CLAUSE = text("status IN ('scheduled', 'confirmed')")


class Appointment(Base):
    """Represents a booked counseling session."""
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one active booking may start at a given counselor slot.
        Index(
            'uq_appointments_counselor_active_slot',
            'counselor_id',
            'scheduled_at',
            unique=True,
            postgresql_where=_ACTIVE_STATUS_CLAUSE,
            sqlite_where=_ACTIVE_STATUS_CLAUSE,
        ),
        Index('idx_appointments_student_scheduled', 'student_id', 'scheduled_at'),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    counselor_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    appointment_type = Column(String, nullable=False)
    scheduled_at = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    status = Column(String, nullable=False, default='scheduled')
    notes = Column(Text)
    student_notes = Column(Text)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
