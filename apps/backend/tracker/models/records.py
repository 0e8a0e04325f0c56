from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from tracker.db import Base


class TrafficLog(Base):
    __tablename__ = "traffic_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # "YYYY-MM-DD HH:MM:SS" (server) or ISO-8601 (client)
    timestamp: Mapped[str] = mapped_column(String(32), index=True)

    ip: Mapped[str] = mapped_column(String(64), default="unknown")
    user_agent: Mapped[str] = mapped_column(Text, default="unknown")
    referer: Mapped[str] = mapped_column(Text, default="direct")

    page: Mapped[str] = mapped_column(Text, default="unknown")
    action: Mapped[str] = mapped_column(String(32), default="visit", index=True)
    label: Mapped[str | None] = mapped_column(Text, nullable=True)
    session_id: Mapped[str] = mapped_column(String(64), index=True)

    device_type: Mapped[str] = mapped_column(String(12), default="unknown")
    browser: Mapped[str] = mapped_column(String(16), default="unknown")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class FormSubmission(Base):
    __tablename__ = "form_submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(32), index=True)
    session_id: Mapped[str] = mapped_column(String(64), index=True)

    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)

    form_type: Mapped[str] = mapped_column(String(16), default="general", index=True)  # call_back|brochure|chat|general
    source: Mapped[str] = mapped_column(Text, default="form-submission")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class VisitorRecord(Base):
    __tablename__ = "visitors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[str] = mapped_column(String(32))
    session_id: Mapped[str] = mapped_column(String(64), index=True)

    page: Mapped[str | None] = mapped_column(Text, nullable=True)
    device_type: Mapped[str | None] = mapped_column(String(12), nullable=True)
    browser: Mapped[str | None] = mapped_column(String(16), nullable=True)
    behavior: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


Index("idx_traffic_logs_session_ts", TrafficLog.session_id, TrafficLog.timestamp)
