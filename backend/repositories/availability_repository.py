"""Queries over the counselor availability stores."""

import uuid
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.core import config
from backend.models.appointment import ACTIVE_STATUSES, Appointment
from backend.models.availability import AvailabilityWindow, CounselorSettings, TimeOff
from backend.scheduling.conflicts import BusyInterval, CounselorSchedule
from backend.scheduling.windows import WeeklyWindow

# Appointments starting this long before a range can still reach into it.
APPOINTMENT_LOOKBACK = timedelta(minutes=config.MAX_SLOT_MINUTES)


class AvailabilityRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get_settings(self, counselor_id: uuid.UUID) -> CounselorSettings | None:
        return self.db.get(CounselorSettings, counselor_id)

    def get_slot_minutes(self, counselor_id: uuid.UUID) -> int:
        settings = self.get_settings(counselor_id)
        if settings is None or not settings.slot_minutes:
            return config.DEFAULT_SLOT_MINUTES
        return settings.slot_minutes

    def save_slot_minutes(self, counselor_id: uuid.UUID, slot_minutes: int) -> CounselorSettings:
        settings = self.get_settings(counselor_id)
        if settings is None:
            settings = CounselorSettings(counselor_id=counselor_id, slot_minutes=slot_minutes)
            self.db.add(settings)
        else:
            settings.slot_minutes = slot_minutes
        return settings

    def list_windows(self, counselor_id: uuid.UUID) -> list[AvailabilityWindow]:
        statement = select(AvailabilityWindow).where(
            AvailabilityWindow.counselor_id == counselor_id,
            AvailabilityWindow.is_active.is_(True),
        )
        statement = statement.order_by(AvailabilityWindow.weekday, AvailabilityWindow.start_time)
        return list(self.db.scalars(statement))

    def get_window(self, counselor_id: uuid.UUID, window_id: int) -> AvailabilityWindow | None:
        return self.db.scalars(
            select(AvailabilityWindow).where(
                AvailabilityWindow.id == window_id,
                AvailabilityWindow.counselor_id == counselor_id,
            )
        ).first()

    def list_time_off(
        self,
        counselor_id: uuid.UUID,
        range_start: datetime | None = None,
        range_end: datetime | None = None,
    ) -> list[TimeOff]:
        statement = select(TimeOff).where(TimeOff.counselor_id == counselor_id)
        if range_start is not None:
            statement = statement.where(TimeOff.end_at > range_start)
        if range_end is not None:
            statement = statement.where(TimeOff.start_at < range_end)
        return list(self.db.scalars(statement.order_by(TimeOff.start_at)))

    def get_time_off(self, counselor_id: uuid.UUID, time_off_id: int) -> TimeOff | None:
        return self.db.scalars(
            select(TimeOff).where(TimeOff.id == time_off_id, TimeOff.counselor_id == counselor_id)
        ).first()

    def list_counselor_busy(
        self,
        counselor_id: uuid.UUID,
        range_start: datetime,
        range_end: datetime,
    ) -> list[BusyInterval]:
        return self._busy_intervals(Appointment.counselor_id == counselor_id, range_start, range_end)

    def list_student_busy(
        self,
        student_id: uuid.UUID,
        range_start: datetime,
        range_end: datetime,
    ) -> list[BusyInterval]:
        return self._busy_intervals(Appointment.student_id == student_id, range_start, range_end)

    def _busy_intervals(self, owner_clause, range_start: datetime, range_end: datetime) -> list[BusyInterval]:
        rows = self.db.execute(
            select(Appointment.scheduled_at, Appointment.duration_minutes).where(
                owner_clause,
                Appointment.status.in_(ACTIVE_STATUSES),
                Appointment.scheduled_at >= range_start - APPOINTMENT_LOOKBACK,
                Appointment.scheduled_at < range_end,
            )
        ).all()
        return [
            BusyInterval.for_appointment(scheduled_at, duration_minutes or config.DEFAULT_SLOT_MINUTES)
            for scheduled_at, duration_minutes in rows
        ]

    def load_schedule(
        self,
        counselor_id: uuid.UUID,
        range_start: datetime,
        range_end: datetime,
        *,
        slot_minutes: int | None = None,
    ) -> CounselorSchedule:
        """Snapshot of everything the conflict checker needs for ``[range_start, range_end)``."""
        return CounselorSchedule(
            slot_minutes=slot_minutes or self.get_slot_minutes(counselor_id),
            windows=tuple(WeeklyWindow.from_model(window) for window in self.list_windows(counselor_id)),
            time_off=tuple(
                BusyInterval(start=item.start_at, end=item.end_at)
                for item in self.list_time_off(counselor_id, range_start, range_end)
            ),
            appointments=tuple(self.list_counselor_busy(counselor_id, range_start, range_end)),
        )
