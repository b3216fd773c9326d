from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, String
from sqlmodel import Field, SQLModel

from app.models.member import utc_now


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    email: str | None = Field(
        default=None,
        sa_column=Column(String(320), unique=True, index=True, nullable=True),
    )
    phone: str | None = Field(
        default=None,
        sa_column=Column(String(32), unique=True, index=True, nullable=True),
    )
    hashed_password: str = Field(nullable=False, max_length=255)
    member_id: UUID | None = Field(default=None, foreign_key="members.id", unique=True, index=True)
    is_active: bool = Field(default=True, nullable=False)
    email_verified: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(default_factory=utc_now, nullable=False)
    updated_at: datetime = Field(default_factory=utc_now, nullable=False)
