import math
import uuid
from datetime import date, datetime, time
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_serializer, field_validator
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.core import config
from backend.database import get_db
from backend.models.user import User
from backend.scheduling.intervals import isoformat_utc
from backend.services.booking_service import BookingRequest, BookingService

router = APIRouter(tags=['appointments'])

MAX_STUDENT_NOTES_LENGTH = 1000
MAX_STATUS_NOTES_LENGTH = 1000
MAX_CANCEL_REASON_LENGTH = 500

AppointmentStatus = Literal['scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', 'no_show']


def _strip_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


class CreateAppointmentRequest(BaseModel):
    counselor_id: uuid.UUID = Field(alias='counselorId')
    appointment_type: Literal['virtual', 'in_person'] = Field(alias='appointmentType')
    scheduled_at: datetime = Field(alias='scheduledAt')
    duration_minutes: int | None = Field(default=None, ge=15, le=180, alias='durationMinutes')
    student_notes: str | None = Field(default=None, max_length=MAX_STUDENT_NOTES_LENGTH, alias='studentNotes')

    class Config:
        populate_by_name = True

    @field_validator('student_notes')
    @classmethod
    def validate_student_notes(cls, value: str | None) -> str | None:
        return _strip_optional_text(value)


class UpdateStatusRequest(BaseModel):
    status: AppointmentStatus
    notes: str | None = Field(default=None, max_length=MAX_STATUS_NOTES_LENGTH)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _strip_optional_text(value)


class CancelAppointmentRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=MAX_CANCEL_REASON_LENGTH)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _strip_optional_text(value)


class AppointmentResponse(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    counselor_id: uuid.UUID
    appointment_type: str
    scheduled_at: datetime
    duration_minutes: int
    status: str
    notes: str | None = None
    student_notes: str | None = None

    class Config:
        from_attributes = True

    @field_serializer('scheduled_at')
    def serialize_scheduled_at(self, value: datetime) -> str:
        return isoformat_utc(value)


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AppointmentListResponse(BaseModel):
    success: bool = True
    appointments: list[AppointmentResponse]
    pagination: PaginationResponse


class AppointmentDetailResponse(BaseModel):
    success: bool = True
    appointment: AppointmentResponse


class BookingResponse(BaseModel):
    success: bool = True
    appointment: AppointmentResponse
    chatSessionId: uuid.UUID


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class CounselorResponse(BaseModel):
    id: uuid.UUID
    first_name: str | None = None
    last_name: str | None = None
    email: str
    specialization: str | None = None
    languages_spoken: str | None = None
    bio: str | None = None


class CounselorListResponse(BaseModel):
    success: bool = True
    counselors: list[CounselorResponse]


class AvailableSlotsResponse(BaseModel):
    success: bool = True
    slotMinutes: int
    slots: list[str]


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)


@router.get('/counselors/available', response_model=CounselorListResponse)
def list_available_counselors(
    on_date: date | None = Query(default=None, alias='date'),
    at_time: time | None = Query(default=None, alias='time'),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    counselors = service.list_available_counselors(on_date, at_time)
    return CounselorListResponse(
        counselors=[
            CounselorResponse(
                id=counselor.id,
                first_name=counselor.first_name,
                last_name=counselor.last_name,
                email=counselor.email,
                specialization=profile.specialization,
                languages_spoken=profile.languages_spoken,
                bio=profile.bio,
            )
            for counselor, profile in counselors
        ]
    )


@router.get('/counselors/{counselor_id}/available-slots', response_model=AvailableSlotsResponse)
def list_available_slots(
    counselor_id: uuid.UUID,
    from_date: date = Query(alias='from'),
    to_date: date = Query(alias='to'),
    slot_minutes: int | None = Query(default=None, alias='slotMinutes', ge=5, le=config.MAX_SLOT_MINUTES, multiple_of=5),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    # slotMinutes previews another grid; bookings still follow the counselor's own slot size.
    slot_size, slots = service.list_available_slots(counselor_id, from_date, to_date, slot_minutes=slot_minutes)
    return AvailableSlotsResponse(slotMinutes=slot_size, slots=[isoformat_utc(slot) for slot in slots])


@router.get('', response_model=AppointmentListResponse)
def list_appointments(
    status_filter: AppointmentStatus | None = Query(default=None, alias='status'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    appointments, total = service.list_for_user(current_user, status=status_filter, page=page, limit=limit)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.model_validate(appointment) for appointment in appointments],
        pagination=PaginationResponse(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
    )


@router.post('', response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    appointment, chat_session = service.book(
        current_user,
        BookingRequest(
            counselor_id=data.counselor_id,
            appointment_type=data.appointment_type,
            scheduled_at=data.scheduled_at,
            duration_minutes=data.duration_minutes,
            student_notes=data.student_notes,
        ),
    )
    return BookingResponse(
        appointment=AppointmentResponse.model_validate(appointment),
        chatSessionId=chat_session.id,
    )


@router.get('/{appointment_id}', response_model=AppointmentDetailResponse)
def get_appointment(
    appointment_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    appointment = service.get_for_user(appointment_id, current_user)
    return AppointmentDetailResponse(appointment=AppointmentResponse.model_validate(appointment))


@router.patch('/{appointment_id}/status', response_model=MessageResponse)
def update_appointment_status(
    appointment_id: uuid.UUID,
    data: UpdateStatusRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    service.update_status(appointment_id, current_user, data.status, data.notes)
    return MessageResponse(message='Appointment status updated successfully')


@router.patch('/{appointment_id}/cancel', response_model=MessageResponse)
def cancel_appointment(
    appointment_id: uuid.UUID,
    data: CancelAppointmentRequest | None = None,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    service.cancel(appointment_id, current_user, data.reason if data else None)
    return MessageResponse(message='Appointment cancelled successfully')
