"""User model."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from app.core.database import Base


class User(Base):
    """Account record mirrored from the identity provider."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    family = Column(String, nullable=True)
    email = Column(String, unique=True, nullable=True, index=True)
    phone = Column(String, unique=True, nullable=True, index=True)
    role = Column(String, nullable=False, default="PLAYER")  # PLAYER, FIELD_OWNER, ADMIN
    created_at = Column(DateTime, server_default=func.now())

    @property
    def display_name(self) -> str:
        full = " ".join(part for part in (self.name, self.family) if part)
        return full or self.email or self.phone or f"user-{self.id}"
