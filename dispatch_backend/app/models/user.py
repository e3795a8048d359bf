"""
User profile database model.

The uid is the identity-service subject; profiles are created once by
``POST /auth/setup``.
"""

from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.sql import func
from dispatch_backend.app.db.session import Base
from dispatch_backend.app.models.enums import UserRole, enum_values


class User(Base):
    """
    User profile model.

    The role decides which lifecycle operations a caller may invoke.
    """
    __tablename__ = "users"

    uid = Column(String(128), primary_key=True, index=True)
    email = Column(String(255), nullable=False, default="")
    name = Column(String(100), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=enum_values),
        default=UserRole.DRIVER,
        nullable=False
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(uid='{self.uid}', email='{self.email}', role='{self.role.value}')>"
