import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


# ─────────────────────────────────────────────────────────────
# User Model
# ─────────────────────────────────────────────────────────────
class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_id)
    email = Column(String, unique=True, index=True, nullable=False)  # stored lower-case
    password_hash = Column(String, nullable=False)
    nickname = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # owner_id is never rewritten: deleting a user with shares is refused by the FK
    shared_quotes = relationship("SharedQuote", back_populates="owner", passive_deletes="all")

    @property
    def display_name(self) -> str:
        return self.nickname or self.email


# ─────────────────────────────────────────────────────────────
# Shared Quote (one row per share request, never renewed)
# ─────────────────────────────────────────────────────────────
class SharedQuote(Base):
    __tablename__ = "shared_quotes"

    id = Column(String, primary_key=True, default=_new_id)
    quote_id = Column(Integer, nullable=False)
    # NULL owner = anonymous share
    owner_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    token = Column(String, nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    access_count = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="shared_quotes")
