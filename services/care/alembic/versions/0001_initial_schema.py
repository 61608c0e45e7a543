"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2024-06-03 09:00:00

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_JSON = postgresql.JSONB().with_variant(sa.JSON(), "sqlite")


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("company_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("company_name", sa.String(255), nullable=False, unique=True),
        sa.Column("registered_address", sa.String(), nullable=True),
        sa.Column("postal_address", sa.String(), nullable=True),
        sa.Column("contact_person_name", sa.String(255), nullable=True),
        sa.Column("contact_person_phone", sa.String(50), nullable=True),
        sa.Column("contact_person_email", sa.String(255), nullable=True),
        _created_at(),
        sa.Column("created_by", sa.Integer(), nullable=True),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(50), nullable=False, server_default="user"),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.company_id"), nullable=True),
        sa.Column("password_changed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("force_password_change", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_company_id", "users", ["company_id"])
    op.create_foreign_key("fk_companies_created_by", "companies", "users", ["created_by"], ["id"])

    op.create_table(
        "segments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("segment_name", sa.String(255), nullable=False),
        sa.Column(
            "company_id",
            sa.Integer(),
            sa.ForeignKey("companies.company_id", ondelete="CASCADE"),
            nullable=False,
        ),
        _created_at(),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.UniqueConstraint("segment_name", "company_id", name="uq_segments_name_company"),
    )
    op.create_index("ix_segments_company_id", "segments", ["company_id"])

    op.create_table(
        "person_info",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(20), nullable=True),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("middle_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("date_of_birth", sa.String(10), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("home_phone_country_code", sa.String(10), nullable=True),
        sa.Column("home_phone", sa.String(50), nullable=True),
        sa.Column("mobile_phone_country_code", sa.String(10), nullable=True),
        sa.Column("mobile_phone", sa.String(50), nullable=True),
        sa.Column("address_line1", sa.String(255), nullable=True),
        sa.Column("address_line2", sa.String(255), nullable=True),
        sa.Column("address_line3", sa.String(255), nullable=True),
        sa.Column("post_code", sa.String(20), nullable=True),
        sa.Column("mailing_address_line1", sa.String(255), nullable=True),
        sa.Column("mailing_address_line2", sa.String(255), nullable=True),
        sa.Column("mailing_address_line3", sa.String(255), nullable=True),
        sa.Column("mailing_post_code", sa.String(20), nullable=True),
        sa.Column("use_home_address", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("next_of_kin_name", sa.String(255), nullable=True),
        sa.Column("next_of_kin_relationship", sa.String(100), nullable=True),
        sa.Column("next_of_kin_address", sa.Text(), nullable=True),
        sa.Column("next_of_kin_email", sa.String(255), nullable=True),
        sa.Column("next_of_kin_phone_country_code", sa.String(10), nullable=True, server_default="+61"),
        sa.Column("next_of_kin_phone", sa.String(50), nullable=True),
        sa.Column("hcp_level", sa.String(20), nullable=True),
        sa.Column("hcp_start_date", sa.String(10), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="New"),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _created_at(),
        sa.Column("segment_id", sa.Integer(), sa.ForeignKey("segments.id"), nullable=True),
    )
    op.create_index("ix_person_info_segment_id", "person_info", ["segment_id"])

    op.create_table(
        "master_data",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("service_category", sa.String(255), nullable=False),
        sa.Column("service_type", sa.String(255), nullable=False),
        sa.Column("service_provider", sa.String(255), nullable=False, server_default=""),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        _created_at(),
        sa.Column("segment_id", sa.Integer(), sa.ForeignKey("segments.id"), nullable=True),
        sa.UniqueConstraint(
            "service_category",
            "service_type",
            "service_provider",
            "segment_id",
            name="uq_master_data_combination_segment",
        ),
    )
    op.create_index("ix_master_data_segment_id", "master_data", ["segment_id"])

    op.create_table(
        "client_services",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("person_info.id"), nullable=False),
        sa.Column("service_category", sa.String(255), nullable=False),
        sa.Column("service_type", sa.String(255), nullable=False),
        sa.Column("service_provider", sa.String(255), nullable=False, server_default=""),
        sa.Column("service_start_date", sa.String(10), nullable=False),
        sa.Column("service_days", _JSON, nullable=False),
        sa.Column("service_hours", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Planned"),
        _created_at(),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("segment_id", sa.Integer(), sa.ForeignKey("segments.id"), nullable=True),
        sa.CheckConstraint("service_hours BETWEEN 1 AND 24", name="ck_client_services_hours"),
    )
    op.create_index("ix_client_services_client_id", "client_services", ["client_id"])
    op.create_index("ix_client_services_segment_id", "client_services", ["segment_id"])

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("person_info.id"), nullable=False),
        sa.Column("document_name", sa.String(255), nullable=False),
        sa.Column("document_type", sa.String(100), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(1024), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("segment_id", sa.Integer(), sa.ForeignKey("segments.id"), nullable=True),
        sa.UniqueConstraint("client_id", "filename", name="uq_documents_client_filename"),
    )
    op.create_index("ix_documents_client_id", "documents", ["client_id"])
    op.create_index("ix_documents_file_path", "documents", ["file_path"])
    op.create_index("ix_documents_segment_id", "documents", ["segment_id"])

    op.create_table(
        "service_case_notes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "service_id",
            sa.Integer(),
            sa.ForeignKey("client_services.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("note_text", sa.Text(), nullable=False),
        _created_at(),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("segment_id", sa.Integer(), sa.ForeignKey("segments.id"), nullable=True),
    )
    op.create_index("ix_service_case_notes_service_id", "service_case_notes", ["service_id"])

    op.create_table(
        "case_note_documents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "case_note_id",
            sa.Integer(),
            sa.ForeignKey("service_case_notes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "document_id",
            sa.Integer(),
            sa.ForeignKey("documents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _created_at(),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.UniqueConstraint("case_note_id", "document_id", name="uq_case_note_documents_pair"),
    )
    op.create_index("ix_case_note_documents_case_note_id", "case_note_documents", ["case_note_id"])
    op.create_index("ix_case_note_documents_document_id", "case_note_documents", ["document_id"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(100), nullable=True),
        sa.Column("resource_id", sa.String(100), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("metadata", _JSON, nullable=True),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    op.create_table(
        "error_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("error_type", sa.String(100), nullable=False),
        sa.Column("error_code", sa.String(100), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=False),
        sa.Column("stack_trace", sa.Text(), nullable=True),
        sa.Column("method", sa.String(10), nullable=True),
        sa.Column("endpoint", sa.String(1024), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("segment_id", sa.Integer(), nullable=True),
        sa.Column("request_data", _JSON, nullable=True),
        sa.Column("request_headers", _JSON, nullable=True),
        sa.Column("session_id", sa.String(255), nullable=True),
        sa.Column("severity", sa.String(20), nullable=False, server_default="ERROR"),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("metadata", _JSON, nullable=True),
    )
    op.create_index("ix_error_logs_severity", "error_logs", ["severity"])
    op.create_index("ix_error_logs_created_at", "error_logs", ["created_at"])

    op.create_table(
        "login_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("login_type", sa.String(30), nullable=False),
        sa.Column("failure_reason", sa.String(255), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("session_id", sa.String(255), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_login_logs_username", "login_logs", ["username"])
    op.create_index("ix_login_logs_login_type", "login_logs", ["login_type"])
    op.create_index("ix_login_logs_created_at", "login_logs", ["created_at"])

    op.create_table(
        "performance_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("endpoint", sa.String(1024), nullable=False),
        sa.Column("method", sa.String(10), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("response_time_ms", sa.Float(), nullable=False),
        sa.Column("response_status", sa.Integer(), nullable=False),
        sa.Column("memory_usage_mb", sa.Float(), nullable=True),
        sa.Column("cpu_usage_percent", sa.Float(), nullable=True),
        sa.Column("database_query_count", sa.Integer(), nullable=True),
        sa.Column("database_time_ms", sa.Float(), nullable=True),
        sa.Column("cache_hits", sa.Integer(), nullable=True),
        sa.Column("cache_misses", sa.Integer(), nullable=True),
        sa.Column("request_size_bytes", sa.Integer(), nullable=True),
        sa.Column("response_size_bytes", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("metadata", _JSON, nullable=True),
    )
    op.create_index("ix_performance_logs_created_at", "performance_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "performance_logs",
        "login_logs",
        "error_logs",
        "audit_logs",
        "case_note_documents",
        "service_case_notes",
        "documents",
        "client_services",
        "master_data",
        "person_info",
        "segments",
    ):
        op.drop_table(table)
    op.drop_constraint("fk_companies_created_by", "companies", type_="foreignkey")
    op.drop_table("users")
    op.drop_table("companies")
