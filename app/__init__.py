"""
Human Resource System
Job board backend: companies post jobs, job seekers apply, admins oversee.

Architecture:
- PostgreSQL (SQLite in tests): users, roles, companies, jobs, applications, profiles
- Local disk: uploaded documents under UPLOAD_DIR
- JSON file: email template overrides
"""

__version__ = "1.0.0"
