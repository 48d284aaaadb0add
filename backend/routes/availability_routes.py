import logging
import uuid
from datetime import datetime, time

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.core import config
from backend.core.errors import AuthorizationError, NotFoundError
from backend.database import get_db
from backend.models.availability import AvailabilityWindow, TimeOff
from backend.models.user import User
from backend.repositories.appointment_repository import AppointmentRepository
from backend.repositories.availability_repository import AvailabilityRepository
from backend.scheduling.intervals import isoformat_utc, to_utc

router = APIRouter(tags=['availability'])
logger = logging.getLogger(__name__)

MAX_TIME_OFF_REASON_LENGTH = 500


class CreateWindowRequest(BaseModel):
    weekday: int = Field(ge=0, le=6)
    start_time: time = Field(alias='startTime')
    end_time: time = Field(alias='endTime')

    class Config:
        populate_by_name = True

    @field_validator('start_time', 'end_time')
    @classmethod
    def drop_seconds(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0, tzinfo=None)

    @model_validator(mode='after')
    def validate_range(self) -> 'CreateWindowRequest':
        if self.start_time >= self.end_time:
            raise ValueError('startTime must be before endTime.')
        return self


class CreateTimeOffRequest(BaseModel):
    start_at: datetime = Field(alias='startAt')
    end_at: datetime = Field(alias='endAt')
    reason: str | None = Field(default=None, max_length=MAX_TIME_OFF_REASON_LENGTH)

    class Config:
        populate_by_name = True

    @model_validator(mode='after')
    def validate_range(self) -> 'CreateTimeOffRequest':
        zone = config.get_scheduling_zone()
        if to_utc(self.start_at, zone) >= to_utc(self.end_at, zone):
            raise ValueError('startAt must be before endAt.')
        return self


class UpdateSettingsRequest(BaseModel):
    slot_minutes: int = Field(alias='slotMinutes', gt=0, le=config.MAX_SLOT_MINUTES, multiple_of=5)

    class Config:
        populate_by_name = True


class WindowResponse(BaseModel):
    id: int
    weekday: int
    start_time: time
    end_time: time
    is_active: bool

    class Config:
        from_attributes = True


class TimeOffResponse(BaseModel):
    id: int
    start_at: datetime
    end_at: datetime
    reason: str | None = None

    class Config:
        from_attributes = True

    @field_serializer('start_at', 'end_at')
    def serialize_timestamp(self, value: datetime) -> str:
        return isoformat_utc(value)


class AvailabilityResponse(BaseModel):
    success: bool = True
    slotMinutes: int
    timezone: str
    windows: list[WindowResponse]
    timeOff: list[TimeOffResponse]


class WindowEnvelope(BaseModel):
    success: bool = True
    window: WindowResponse


class TimeOffEnvelope(BaseModel):
    success: bool = True
    timeOff: TimeOffResponse


class SettingsResponse(BaseModel):
    success: bool = True
    slotMinutes: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str


def require_counselor_access(
    counselor_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    """The counselor whose availability is addressed, if the caller may manage it."""
    if current_user.id != counselor_id and not current_user.is_admin:
        raise AuthorizationError('Only the counselor or an admin can manage this availability.')

    counselor = AppointmentRepository(db).get_active_counselor(counselor_id)
    if counselor is None:
        raise NotFoundError('Counselor not found or inactive')
    return counselor


def commit_or_rollback(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


@router.get('/{counselor_id}/availability', response_model=AvailabilityResponse)
def get_availability(
    counselor_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if AppointmentRepository(db).get_active_counselor(counselor_id) is None:
        raise NotFoundError('Counselor not found or inactive')

    repository = AvailabilityRepository(db)
    return AvailabilityResponse(
        slotMinutes=repository.get_slot_minutes(counselor_id),
        timezone=config.SCHEDULING_TIMEZONE,
        windows=[WindowResponse.model_validate(window) for window in repository.list_windows(counselor_id)],
        timeOff=[TimeOffResponse.model_validate(item) for item in repository.list_time_off(counselor_id)],
    )


@router.post(
    '/{counselor_id}/availability/windows',
    response_model=WindowEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def create_window(
    data: CreateWindowRequest,
    counselor: User = Depends(require_counselor_access),
    db: Session = Depends(get_db),
):
    window = AvailabilityWindow(
        counselor_id=counselor.id,
        weekday=data.weekday,
        start_time=data.start_time,
        end_time=data.end_time,
        is_active=True,
    )
    db.add(window)
    commit_or_rollback(db)
    db.refresh(window)

    logger.info('Added availability window %s for counselor %s', window.id, counselor.id)
    return WindowEnvelope(window=WindowResponse.model_validate(window))


@router.delete('/{counselor_id}/availability/windows/{window_id}', response_model=MessageResponse)
def deactivate_window(
    window_id: int,
    counselor: User = Depends(require_counselor_access),
    db: Session = Depends(get_db),
):
    window = AvailabilityRepository(db).get_window(counselor.id, window_id)
    if window is None or not window.is_active:
        raise NotFoundError('Availability window not found')

    window.is_active = False
    commit_or_rollback(db)

    logger.info('Deactivated availability window %s for counselor %s', window_id, counselor.id)
    return MessageResponse(message='Availability window removed')


@router.post(
    '/{counselor_id}/availability/time-off',
    response_model=TimeOffEnvelope,
    status_code=status.HTTP_201_CREATED,
)
def create_time_off(
    data: CreateTimeOffRequest,
    counselor: User = Depends(require_counselor_access),
    db: Session = Depends(get_db),
):
    zone = config.get_scheduling_zone()
    time_off = TimeOff(
        counselor_id=counselor.id,
        start_at=to_utc(data.start_at, zone),
        end_at=to_utc(data.end_at, zone),
        reason=data.reason,
    )
    db.add(time_off)
    commit_or_rollback(db)
    db.refresh(time_off)

    logger.info('Added time-off %s for counselor %s', time_off.id, counselor.id)
    return TimeOffEnvelope(timeOff=TimeOffResponse.model_validate(time_off))


@router.delete('/{counselor_id}/availability/time-off/{time_off_id}', response_model=MessageResponse)
def remove_time_off(
    time_off_id: int,
    counselor: User = Depends(require_counselor_access),
    db: Session = Depends(get_db),
):
    time_off = AvailabilityRepository(db).get_time_off(counselor.id, time_off_id)
    if time_off is None:
        raise NotFoundError('Time-off not found')

    db.delete(time_off)
    commit_or_rollback(db)

    logger.info('Removed time-off %s for counselor %s', time_off_id, counselor.id)
    return MessageResponse(message='Time-off removed')


@router.put('/{counselor_id}/availability/settings', response_model=SettingsResponse)
def update_settings(
    data: UpdateSettingsRequest,
    counselor: User = Depends(require_counselor_access),
    db: Session = Depends(get_db),
):
    settings = AvailabilityRepository(db).save_slot_minutes(counselor.id, data.slot_minutes)
    commit_or_rollback(db)

    logger.info('Counselor %s slot size set to %s minutes', counselor.id, data.slot_minutes)
    return SettingsResponse(slotMinutes=settings.slot_minutes)
