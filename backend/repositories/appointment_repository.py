"""Appointment persistence helpers."""

import uuid
from dataclasses import dataclass

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from backend.models.appointment import Appointment
from backend.models.chat_session import ChatSession
from backend.models.user import ADMIN_ROLES, COUNSELOR_ROLE, STUDENT_ROLE, CounselorProfile, User


@dataclass(frozen=True)
class AppointmentListQuery:
    """Filters for the role-scoped appointment list.

    Each field switches on one fixed clause; no SQL is assembled from strings.
    """

    user_id: uuid.UUID
    role: str
    status: str | None = None
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def apply(self, statement: Select) -> Select:
        if self.role == STUDENT_ROLE:
            statement = statement.where(Appointment.student_id == self.user_id)
        elif self.role == COUNSELOR_ROLE:
            statement = statement.where(Appointment.counselor_id == self.user_id)
        elif self.role not in ADMIN_ROLES:
            statement = statement.where(
                or_(Appointment.student_id == self.user_id, Appointment.counselor_id == self.user_id)
            )

        if self.status is not None:
            statement = statement.where(Appointment.status == self.status)
        return statement


class AppointmentRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, appointment_id: uuid.UUID) -> Appointment | None:
        return self.db.get(Appointment, appointment_id)

    def list_for_user(self, query: AppointmentListQuery) -> tuple[list[Appointment], int]:
        page_statement = (
            query.apply(select(Appointment))
            .order_by(Appointment.scheduled_at.desc())
            .limit(query.limit)
            .offset(query.offset)
        )
        count_statement = query.apply(select(func.count()).select_from(Appointment))

        appointments = list(self.db.scalars(page_statement))
        total = self.db.scalar(count_statement) or 0
        return appointments, total

    def get_active_counselor(self, counselor_id: uuid.UUID) -> User | None:
        return self.db.scalars(
            select(User).where(
                User.id == counselor_id,
                User.role == COUNSELOR_ROLE,
                User.is_active.is_(True),
            )
        ).first()

    def list_verified_counselors(self) -> list[tuple[User, CounselorProfile]]:
        rows = self.db.execute(
            select(User, CounselorProfile)
            .join(CounselorProfile, CounselorProfile.user_id == User.id)
            .where(
                User.role == COUNSELOR_ROLE,
                User.is_active.is_(True),
                CounselorProfile.is_verified.is_(True),
            )
            .order_by(User.first_name, User.last_name)
        ).all()
        return [(user, profile) for user, profile in rows]

    def lock_participants(self, *user_ids: uuid.UUID) -> None:
        """Take row locks on the given users, in id order, for the rest of the transaction.

        Backends without ``FOR UPDATE`` (SQLite) ignore the clause; the unique
        slot index still guards them.
        """
        self.db.execute(
            select(User.id).where(User.id.in_(sorted(set(user_ids)))).order_by(User.id).with_for_update()
        ).all()

    def add(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.db.flush()
        return appointment

    def open_counselor_chat(self, student_id: uuid.UUID, counselor_id: uuid.UUID) -> ChatSession:
        chat_session = ChatSession(user_id=student_id, counselor_id=counselor_id, session_type='counselor_chat')
        self.db.add(chat_session)
        self.db.flush()
        return chat_session
