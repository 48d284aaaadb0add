"""User model definitions."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import relationship

from backend.database import Base

STUDENT_ROLE = 'student'
COUNSELOR_ROLE = 'counselor'
ADMIN_ROLES = frozenset({'college_admin', 'ngo_admin'})


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String)
    last_name = Column(String)
    role = Column(String, nullable=False)  # student/counselor/peer_volunteer/college_admin/ngo_admin
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    counselor_profile = relationship('CounselorProfile', back_populates='user', uselist=False)

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


class CounselorProfile(Base):
    """Public profile shown to students choosing a counselor."""
    __tablename__ = "counselor_profiles"

    user_id = Column(Uuid, ForeignKey("users.id"), primary_key=True)
    specialization = Column(String)
    languages_spoken = Column(String)
    bio = Column(Text)
    is_verified = Column(Boolean, default=False, nullable=False)

    user = relationship('User', back_populates='counselor_profile')
