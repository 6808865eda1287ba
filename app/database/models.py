from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum, func
from sqlalchemy.orm import relationship

from app.database.connection import Base
from app.models.authorization import AuthorizationStatus


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(Text, unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    authorization_status = Column(
        Enum(AuthorizationStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=AuthorizationStatus.NOT_DETERMINED,
        nullable=False,
    )
    created_at = Column(DateTime, server_default=func.now())

    notifications = relationship(
        "PendingNotification",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="PendingNotification.position",
    )


class PendingNotification(Base):
    __tablename__ = "pending_notifications"
    identifier = Column(String(64), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False, default="")
    # Calendar trigger components, wall-clock time in NOTIFICATION_TIMEZONE
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    day = Column(Integer, nullable=False)
    hour = Column(Integer, nullable=False)
    minute = Column(Integer, nullable=False)
    repeats = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="notifications")
