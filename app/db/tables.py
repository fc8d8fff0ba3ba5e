"""
Relational schema.

Declared once with SQLAlchemy Core so metadata.create_all() builds the same
tables on PostgreSQL and on SQLite (tests). All queries elsewhere are raw SQL
against these names.
"""

from sqlalchemy import (
    MetaData, Table, Column, String, Text, Integer, Boolean, Date, DateTime,
    Numeric, ForeignKey, UniqueConstraint, Index, func, false, true
)

metadata = MetaData()


def _id():
    return Column("id", String(36), primary_key=True)


def _user_fk(name="user_id", nullable=False):
    return Column(name, String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=nullable)


def _timestamps():
    return [
        Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
        Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
    ]


# ============================================================
# USERS, ROLES, PERMISSIONS
# ============================================================

users = Table(
    "users", metadata,
    _id(),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("phone", String(50)),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    Column("is_blocked", Boolean, nullable=False, server_default=false()),
    Column("blocked_reason", Text),
    Column("blocked_at", DateTime),
    Column("last_login_at", DateTime),
    Column("password_reset_token", String(36)),
    Column("password_reset_expires_at", DateTime),
    Column("password_reset_requested_at", DateTime),
    *_timestamps(),
)

roles = Table(
    "roles", metadata,
    _id(),
    Column("name", String(50), nullable=False, unique=True),
    Column("description", Text),
    Column("is_system", Boolean, nullable=False, server_default=false()),
    *_timestamps(),
)

permissions = Table(
    "permissions", metadata,
    _id(),
    Column("name", String(100), nullable=False, unique=True),
    Column("description", Text),
    Column("module_name", String(50), nullable=False, server_default="general"),
    Column("action_type", String(50), nullable=False, server_default="MANAGE"),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

role_permissions = Table(
    "role_permissions", metadata,
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", String(36), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)

user_roles = Table(
    "user_roles", metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("assigned_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)


# ============================================================
# COMPANIES
# ============================================================

companies = Table(
    "companies", metadata,
    _id(),
    Column("name", String(150), nullable=False),
    Column("industry", String(100)),
    Column("description", Text),
    Column("website", String(255)),
    Column("logo_url", String(500)),
    Column("contact_email", String(255)),
    Column("contact_phone", String(50)),
    Column("address_line1", String(255)),
    Column("address_line2", String(255)),
    Column("city", String(100)),
    Column("country", String(100)),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("created_by", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("approved_by", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("approved_at", DateTime),
    *_timestamps(),
)

company_users = Table(
    "company_users", metadata,
    Column("company_id", String(36), ForeignKey("companies.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("added_by", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)


# ============================================================
# JOBS & APPLICATIONS
# ============================================================

jobs = Table(
    "jobs", metadata,
    _id(),
    Column("company_id", String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
    Column("employer_id", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("title", String(200), nullable=False),
    Column("description", Text),
    Column("location", String(200)),
    Column("salary_min", Numeric(12, 2)),
    Column("salary_max", Numeric(12, 2)),
    Column("salary_currency", String(3), nullable=False, server_default="USD"),
    Column("category", String(100)),
    Column("experience_level", String(20)),
    Column("employment_type", String(20)),
    Column("remote", Boolean, nullable=False, server_default=false()),
    Column("requirements", Text),
    Column("responsibilities", Text),
    Column("benefits", Text),
    Column("application_deadline", Date),
    Column("status", String(20), nullable=False, server_default="active"),
    Column("views", Integer, nullable=False, server_default="0"),
    Column("is_featured", Boolean, nullable=False, server_default=false()),
    *_timestamps(),
)
Index("ix_jobs_status_created", jobs.c.status, jobs.c.created_at)

applications = Table(
    "applications", metadata,
    _id(),
    Column("job_id", String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
    _user_fk(),
    Column("cover_letter", Text),
    Column("resume_url", String(500)),
    Column("document_id", String(36), ForeignKey("documents.id", ondelete="SET NULL")),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("notes", Text),
    Column("reviewed_by", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("reviewed_at", DateTime),
    *_timestamps(),
    UniqueConstraint("job_id", "user_id", name="uq_applications_job_user"),
)


# ============================================================
# JOB SEEKER PROFILE
# ============================================================

job_seeker_profiles = Table(
    "job_seeker_profiles", metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("professional_summary", Text),
    Column("field_of_expertise", String(150)),
    Column("qualification_level", String(100)),
    Column("years_experience", Integer),
    *_timestamps(),
)

job_seeker_personal_details = Table(
    "job_seeker_personal_details", metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("middle_name", String(100)),
    Column("gender", String(30)),
    Column("date_of_birth", Date),
    Column("nationality", String(100)),
    Column("id_type", String(50)),
    Column("id_number", String(100)),
    Column("marital_status", String(30)),
    Column("disability_status", String(100)),
    *_timestamps(),
)

job_seeker_addresses = Table(
    "job_seeker_addresses", metadata,
    _id(),
    _user_fk(),
    Column("address_line1", String(255), nullable=False),
    Column("address_line2", String(255)),
    Column("city", String(100), nullable=False),
    Column("state", String(100)),
    Column("country", String(100), nullable=False),
    Column("postal_code", String(30)),
    Column("is_primary", Boolean, nullable=False, server_default=false()),
    *_timestamps(),
)

job_seeker_education = Table(
    "job_seeker_education", metadata,
    _id(),
    _user_fk(),
    Column("institution_name", String(200), nullable=False),
    Column("qualification", String(150), nullable=False),
    Column("field_of_study", String(150)),
    Column("start_date", Date),
    Column("end_date", Date),
    Column("is_current", Boolean, nullable=False, server_default=false()),
    Column("grade", String(50)),
    Column("certificate_url", String(500)),
    *_timestamps(),
)

job_seeker_experience = Table(
    "job_seeker_experience", metadata,
    _id(),
    _user_fk(),
    Column("company_name", String(200), nullable=False),
    Column("job_title", String(150), nullable=False),
    Column("employment_type", String(30)),
    Column("start_date", Date),
    Column("end_date", Date),
    Column("is_current", Boolean, nullable=False, server_default=false()),
    Column("responsibilities", Text),
    Column("salary", Numeric(12, 2)),
    Column("reference_contact", String(255)),
    *_timestamps(),
)

job_seeker_references = Table(
    "job_seeker_references", metadata,
    _id(),
    _user_fk(),
    Column("full_name", String(150), nullable=False),
    Column("relationship", String(100)),
    Column("company", String(150)),
    Column("email", String(255)),
    Column("phone", String(50)),
    *_timestamps(),
)

job_seeker_skills = Table(
    "job_seeker_skills", metadata,
    _id(),
    _user_fk(),
    Column("name", String(100), nullable=False),
    Column("proficiency_level", String(20)),
    Column("years_of_experience", Integer),
    Column("is_primary", Boolean, nullable=False, server_default=false()),
    *_timestamps(),
)
Index("ix_job_seeker_skills_user_name", job_seeker_skills.c.user_id, job_seeker_skills.c.name)

job_seeker_certifications = Table(
    "job_seeker_certifications", metadata,
    _id(),
    _user_fk(),
    Column("name", String(200), nullable=False),
    Column("issuing_organization", String(200), nullable=False),
    Column("issue_date", Date, nullable=False),
    Column("expiration_date", Date),
    Column("does_not_expire", Boolean, nullable=False, server_default=false()),
    Column("credential_id", String(100)),
    Column("credential_url", String(500)),
    Column("description", Text),
    *_timestamps(),
)


# ============================================================
# DOCUMENTS
# ============================================================

documents = Table(
    "documents", metadata,
    _id(),
    _user_fk(nullable=True),
    Column("company_id", String(36), ForeignKey("companies.id", ondelete="CASCADE")),
    Column("document_type", String(50), nullable=False, server_default="other"),
    Column("file_name", String(255), nullable=False),
    Column("original_name", String(255), nullable=False),
    Column("file_path", String(500), nullable=False),
    Column("file_url", String(500), nullable=False),
    Column("file_size", Integer, nullable=False),
    Column("mime_type", String(150), nullable=False),
    Column("description", Text),
    Column("is_primary", Boolean, nullable=False, server_default=false()),
    Column("is_public", Boolean, nullable=False, server_default=false()),
    Column("uploaded_by", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    *_timestamps(),
)


# ============================================================
# NOTIFICATIONS
# ============================================================

notifications = Table(
    "notifications", metadata,
    _id(),
    _user_fk(),
    Column("type", String(50), nullable=False),
    Column("title", String(255), nullable=False),
    Column("message", Text, nullable=False),
    Column("data", Text),
    Column("action_url", String(500)),
    Column("priority", String(10), nullable=False, server_default="normal"),
    Column("is_read", Boolean, nullable=False, server_default=false()),
    Column("read_at", DateTime),
    *_timestamps(),
)
Index("ix_notifications_user_read", notifications.c.user_id, notifications.c.is_read)

notification_preferences = Table(
    "notification_preferences", metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("email_notifications", Boolean, nullable=False, server_default=true()),
    Column("push_notifications", Boolean, nullable=False, server_default=true()),
    Column("in_app_notifications", Boolean, nullable=False, server_default=true()),
    Column("application_updates", Boolean, nullable=False, server_default=true()),
    Column("job_alerts", Boolean, nullable=False, server_default=true()),
    Column("message_notifications", Boolean, nullable=False, server_default=true()),
    Column("marketing_emails", Boolean, nullable=False, server_default=false()),
    *_timestamps(),
)


# ============================================================
# AUDIT & SETTINGS
# ============================================================

audit_logs = Table(
    "audit_logs", metadata,
    _id(),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("action_type", String(100), nullable=False),
    Column("module_name", String(50)),
    Column("table_name", String(100)),
    Column("record_id", String(36)),
    Column("new_data", Text),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

admin_logs = Table(
    "admin_logs", metadata,
    _id(),
    Column("admin_id", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("action", String(100), nullable=False),
    Column("target_type", String(50)),
    Column("target_id", String(36)),
    Column("details", Text),
    Column("ip_address", String(64)),
    Column("user_agent", String(500)),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

system_settings = Table(
    "system_settings", metadata,
    Column("setting_key", String(100), primary_key=True),
    Column("setting_value", Text),
    Column("updated_by", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("updated_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)
