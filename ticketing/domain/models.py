from __future__ import annotations

from typing import Any, Optional
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import SQLModel, Field

from ticketing.core.timeutils import now_local


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str
    email: str = Field(index=True, unique=True)
    password_hash: str

    role: str = Field(default="customer", index=True)
    active: bool = Field(default=True)

    # naive wall-clock values in the reference zone, stored through plain DateTime columns
    registered_on: datetime = Field(default_factory=now_local, sa_column=Column(DateTime, nullable=False))
    last_login: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    jwt_token: Optional[str] = None


class Ticket(SQLModel, table=True):
    __tablename__ = "tickets"

    id: Optional[int] = Field(default=None, primary_key=True)

    title: str
    description: str
    type: str = Field(index=True)
    venue: str

    status: str = Field(default="open", index=True)
    priority: str = Field(default="medium", index=True)
    price: float

    due_date: datetime = Field(sa_column=Column(DateTime, nullable=False))
    created_by: int = Field(foreign_key="users.id", index=True)

    # [{"userId": ..., "name": ..., "email": ...}], at most 5 entries
    assigned_users: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    version: int = Field(default=0)

    created_at: datetime = Field(default_factory=now_local, sa_column=Column(DateTime, nullable=False, index=True))
    updated_at: datetime = Field(default_factory=now_local, sa_column=Column(DateTime, nullable=False, index=True))


class RequestLog(SQLModel, table=True):
    __tablename__ = "user_logs"

    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: Optional[int] = Field(default=None, index=True)
    jwt_token: Optional[str] = None

    method: str
    path: str
    status_code: Optional[int] = None
    ip_addr: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None

    timestamp: datetime = Field(default_factory=now_local, sa_column=Column(DateTime, nullable=False, index=True))
