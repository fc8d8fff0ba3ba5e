#!/usr/bin/env python3
"""
Database Setup Script

Checks the connection, creates tables, seeds roles/permissions and the
bootstrap admin (ADMIN_EMAIL / ADMIN_PASSWORD), then prints what exists.
Usage: python scripts/init_db.py
"""
import sys
sys.path.insert(0, '.')

from app.core.config import get_settings
from app.db import execute_raw_sql, init_db, test_db_connection


def main():
    settings = get_settings()
    print("=" * 50)
    print(f"{settings.app_name.upper()} - DATABASE SETUP")
    print("=" * 50)

    print("\n[1] Testing database connection...")
    if settings.database_url:
        print(f"    URL: {settings.database_url.split('@')[-1]}")
    else:
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    if not test_db_connection():
        print("    ❌ Database: FAILED")
        sys.exit(1)
    print("    ✅ Database: CONNECTED")

    print("\n[2] Creating tables and seed data...")
    init_db(settings.admin_email, settings.admin_password)
    print("    ✅ Schema ready")
    if not (settings.admin_email and settings.admin_password):
        print("    ⚠️  ADMIN_EMAIL / ADMIN_PASSWORD not set, no bootstrap admin created")

    print("\n[3] Roles:")
    roles = execute_raw_sql("""
        SELECT r.name, COUNT(rp.permission_id) AS permissions
        FROM roles r LEFT JOIN role_permissions rp ON rp.role_id = r.id
        GROUP BY r.name ORDER BY r.name
    """)
    for role in roles:
        print(f"    - {role['name']}: {role['permissions']} permissions")

    print("\n" + "=" * 50)
    print("Database setup complete!")
    print("=" * 50)


if __name__ == "__main__":
    main()
