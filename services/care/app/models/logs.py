"""Append-only log tables. Written best-effort, never read by the API."""

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.core.database import Base


_JSON = JSONB().with_variant(JSON, "sqlite")


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True, index=True)
    username = Column(String(255), nullable=True)
    action = Column(String(100), nullable=False, index=True)
    resource_type = Column(String(100), nullable=True)
    resource_id = Column(String(100), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    metadata_ = Column("metadata", _JSON, nullable=True)


class ErrorLog(Base):
    __tablename__ = "error_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)
    username = Column(String(255), nullable=True)
    error_type = Column(String(100), nullable=False)
    error_code = Column(String(100), nullable=True)
    error_message = Column(Text, nullable=False)
    stack_trace = Column(Text, nullable=True)
    method = Column(String(10), nullable=True)
    endpoint = Column(String(1024), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    company_id = Column(Integer, nullable=True)
    segment_id = Column(Integer, nullable=True)
    request_data = Column(_JSON, nullable=True)
    request_headers = Column(_JSON, nullable=True)
    session_id = Column(String(255), nullable=True)
    severity = Column(String(20), nullable=False, default="ERROR", index=True)
    resolved = Column(Boolean, nullable=False, default=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    metadata_ = Column("metadata", _JSON, nullable=True)


class LoginLog(Base):
    __tablename__ = "login_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=True, index=True)
    user_id = Column(Integer, nullable=True)
    login_type = Column(String(30), nullable=False, index=True)
    failure_reason = Column(String(255), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    session_id = Column(String(255), nullable=True)
    company_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class PerformanceLog(Base):
    __tablename__ = "performance_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint = Column(String(1024), nullable=False)
    method = Column(String(10), nullable=False)
    user_id = Column(Integer, nullable=True)
    company_id = Column(Integer, nullable=True)
    response_time_ms = Column(Float, nullable=False)
    response_status = Column(Integer, nullable=False)
    memory_usage_mb = Column(Float, nullable=True)
    cpu_usage_percent = Column(Float, nullable=True)
    database_query_count = Column(Integer, nullable=True)
    database_time_ms = Column(Float, nullable=True)
    cache_hits = Column(Integer, nullable=True)
    cache_misses = Column(Integer, nullable=True)
    request_size_bytes = Column(Integer, nullable=True)
    response_size_bytes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    metadata_ = Column("metadata", _JSON, nullable=True)
