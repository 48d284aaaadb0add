"""Appointment booking, slot listing and status management.

The service owns the transaction boundaries: booking checks and inserts
inside one transaction, after locking both participants, so two requests
for the same slot cannot both succeed.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core import config
from backend.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from backend.models.appointment import Appointment
from backend.models.chat_session import ChatSession
from backend.models.user import COUNSELOR_ROLE, STUDENT_ROLE, CounselorProfile, User
from backend.repositories.appointment_repository import AppointmentListQuery, AppointmentRepository
from backend.repositories.availability_repository import AvailabilityRepository
from backend.scheduling.conflicts import (
    SlotRejection,
    ensure_slot_available,
    find_conflict,
    is_slot_aligned,
    list_open_slots,
)
from backend.scheduling.intervals import local_to_utc, to_utc
from backend.scheduling.windows import WeeklyWindow

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS = {
    'scheduled': frozenset({'confirmed', 'in_progress', 'completed', 'cancelled', 'no_show'}),
    'confirmed': frozenset({'confirmed', 'in_progress', 'completed', 'cancelled', 'no_show'}),
    'in_progress': frozenset({'completed', 'no_show'}),
}
NON_CANCELLABLE_STATUSES = frozenset({'completed', 'cancelled'})
DEFAULT_CANCEL_REASON = 'Cancelled by user'


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class BookingRequest:
    counselor_id: uuid.UUID
    appointment_type: str
    scheduled_at: datetime
    duration_minutes: int | None = None
    student_notes: str | None = None


class BookingService:
    def __init__(
        self,
        db: Session,
        *,
        zone: tzinfo | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.db = db
        self.zone = zone or config.get_scheduling_zone()
        self.clock = clock
        self.appointments = AppointmentRepository(db)
        self.availability = AvailabilityRepository(db)

    def _require_counselor(self, counselor_id: uuid.UUID) -> User:
        counselor = self.appointments.get_active_counselor(counselor_id)
        if counselor is None:
            raise NotFoundError('Counselor not found or inactive')
        return counselor

    def _require_appointment(self, appointment_id: uuid.UUID) -> Appointment:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundError('Appointment not found')
        return appointment

    @staticmethod
    def _is_participant(user: User, appointment: Appointment) -> bool:
        if user.role == STUDENT_ROLE:
            return appointment.student_id == user.id
        if user.role == COUNSELOR_ROLE:
            return appointment.counselor_id == user.id
        return user.is_admin

    def list_for_user(
        self,
        user: User,
        *,
        status: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Appointment], int]:
        query = AppointmentListQuery(user_id=user.id, role=user.role, status=status, page=page, limit=limit)
        return self.appointments.list_for_user(query)

    def get_for_user(self, appointment_id: uuid.UUID, user: User) -> Appointment:
        appointment = self._require_appointment(appointment_id)
        if not self._is_participant(user, appointment):
            raise AuthorizationError('Access denied')
        return appointment

    def list_available_slots(
        self,
        counselor_id: uuid.UUID,
        start_date: date,
        end_date: date,
        *,
        slot_minutes: int | None = None,
    ) -> tuple[int, list[datetime]]:
        """Open slot starts for ``[start_date, end_date]`` in the scheduling zone.

        Slots starting at or before now are left out, since booking them is
        refused. A ``slot_minutes`` override only changes the listing grid;
        booking keeps using the counselor's stored slot size.
        """
        if end_date < start_date:
            raise ValidationError('to must not be before from')
        if (end_date - start_date).days >= config.MAX_LISTING_RANGE_DAYS:
            raise ValidationError(f'Date range cannot exceed {config.MAX_LISTING_RANGE_DAYS} days')

        self._require_counselor(counselor_id)

        range_start = local_to_utc(start_date, time.min, self.zone)
        range_end = local_to_utc(end_date + timedelta(days=1), time.min, self.zone)
        schedule = self.availability.load_schedule(
            counselor_id,
            range_start,
            range_end,
            slot_minutes=slot_minutes,
        )

        now = self.clock()
        slots = [
            slot_start
            for slot_start in list_open_slots(schedule, start_date, end_date, self.zone)
            if slot_start > now
        ]
        return schedule.slot_minutes, slots

    def list_available_counselors(
        self,
        on_date: date | None = None,
        at_time: time | None = None,
    ) -> list[tuple[User, CounselorProfile]]:
        counselors = self.appointments.list_verified_counselors()
        if at_time is None:
            return counselors
        if on_date is None:
            raise ValidationError('date is required when time is given')

        slot_start = local_to_utc(on_date, at_time, self.zone)
        available = []
        for counselor, profile in counselors:
            slot_minutes = self.availability.get_slot_minutes(counselor.id)
            schedule = self.availability.load_schedule(
                counselor.id,
                slot_start,
                slot_start + timedelta(minutes=slot_minutes),
                slot_minutes=slot_minutes,
            )
            if find_conflict(schedule, slot_start, self.zone) is None:
                available.append((counselor, profile))
        return available

    def _validate_slot_alignment(self, counselor_id: uuid.UUID, scheduled_at: datetime, slot_minutes: int) -> None:
        windows = [WeeklyWindow.from_model(window) for window in self.availability.list_windows(counselor_id)]
        if not is_slot_aligned(windows, scheduled_at, self.zone, slot_minutes):
            raise ValidationError(f'Time must align to {slot_minutes}-minute slots')

    def book(self, student: User, request: BookingRequest) -> tuple[Appointment, ChatSession]:
        if student.role != STUDENT_ROLE:
            raise AuthorizationError('Only students can book appointments')

        self._require_counselor(request.counselor_id)
        slot_minutes = self.availability.get_slot_minutes(request.counselor_id)

        scheduled_at = to_utc(request.scheduled_at, self.zone)
        if scheduled_at <= self.clock():
            raise ValidationError('Appointments must be scheduled in the future.')
        self._validate_slot_alignment(request.counselor_id, scheduled_at, slot_minutes)

        duration_minutes = request.duration_minutes or slot_minutes
        slot_end = scheduled_at + timedelta(minutes=duration_minutes)

        try:
            self.appointments.lock_participants(student.id, request.counselor_id)
            schedule = self.availability.load_schedule(
                request.counselor_id,
                scheduled_at,
                slot_end,
                slot_minutes=slot_minutes,
            )
            ensure_slot_available(
                schedule,
                scheduled_at,
                self.zone,
                duration_minutes=duration_minutes,
                student_appointments=self.availability.list_student_busy(student.id, scheduled_at, slot_end),
            )

            appointment = self.appointments.add(
                Appointment(
                    student_id=student.id,
                    counselor_id=request.counselor_id,
                    appointment_type=request.appointment_type,
                    scheduled_at=scheduled_at,
                    duration_minutes=duration_minutes,
                    status='scheduled',
                    student_notes=request.student_notes,
                )
            )
            chat_session = self.appointments.open_counselor_chat(student.id, request.counselor_id)
            self.db.commit()
        except ConflictError as exc:
            self.db.rollback()
            logger.info(
                'Rejected booking for counselor %s at %s: %s',
                request.counselor_id,
                scheduled_at.isoformat(),
                exc.message,
            )
            raise
        except IntegrityError as exc:
            self.db.rollback()
            logger.info('Concurrent booking lost the race for counselor %s at %s', request.counselor_id, scheduled_at)
            raise ConflictError(SlotRejection.COUNSELOR_BUSY.value) from exc
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(
            'Booked appointment %s for student %s with counselor %s at %s',
            appointment.id,
            student.id,
            request.counselor_id,
            scheduled_at.isoformat(),
        )
        return appointment, chat_session

    def update_status(
        self,
        appointment_id: uuid.UUID,
        user: User,
        status: str,
        notes: str | None = None,
    ) -> Appointment:
        appointment = self._require_appointment(appointment_id)
        if not self._is_participant(user, appointment):
            raise AuthorizationError('Access denied')

        allowed = STATUS_TRANSITIONS.get(appointment.status, frozenset())
        if status not in allowed:
            raise ValidationError(f'Cannot change appointment status from {appointment.status} to {status}')

        previous_status = appointment.status
        appointment.status = status
        if notes and user.role == COUNSELOR_ROLE:
            appointment.notes = notes
        self._commit()

        logger.info('Appointment %s moved from %s to %s by %s', appointment.id, previous_status, status, user.id)
        return appointment

    def cancel(self, appointment_id: uuid.UUID, user: User, reason: str | None = None) -> Appointment:
        appointment = self._require_appointment(appointment_id)
        if not self._is_participant(user, appointment):
            raise AuthorizationError('Access denied')
        if appointment.status in NON_CANCELLABLE_STATUSES:
            raise ValidationError('Appointment cannot be cancelled')

        appointment.status = 'cancelled'
        appointment.notes = reason or DEFAULT_CANCEL_REASON
        self._commit()

        logger.info('Appointment %s cancelled by %s', appointment.id, user.id)
        return appointment

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
