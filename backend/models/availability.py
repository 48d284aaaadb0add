"""Counselor availability model definitions."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Time, Uuid

from backend.database import Base


class AvailabilityWindow(Base):
    """A recurring weekly interval in which a counselor accepts bookings."""
    __tablename__ = "counselor_availability_windows"
    __table_args__ = (
        CheckConstraint('weekday >= 0 AND weekday <= 6', name='ck_availability_window_weekday'),
        CheckConstraint('start_time < end_time', name='ck_availability_window_range'),
    )

    id = Column(Integer, primary_key=True)
    counselor_id = Column(Uuid, ForeignKey("users.id"), index=True, nullable=False)
    weekday = Column(Integer, nullable=False)  # 0=Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class TimeOff(Base):
    """A dated interval that blocks booking regardless of windows."""
    __tablename__ = "counselor_time_off"
    __table_args__ = (
        CheckConstraint('start_at < end_at', name='ck_time_off_range'),
    )

    id = Column(Integer, primary_key=True)
    counselor_id = Column(Uuid, ForeignKey("users.id"), index=True, nullable=False)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    reason = Column(String)


class CounselorSettings(Base):
    __tablename__ = "counselor_settings"
    __table_args__ = (
        CheckConstraint('slot_minutes > 0', name='ck_counselor_settings_slot_minutes'),
    )

    counselor_id = Column(Uuid, ForeignKey("users.id"), primary_key=True)
    slot_minutes = Column(Integer, nullable=False, default=60)
