"""
Email Templates Service

Built-in templates can be overridden, and custom templates added, through the
admin API. Both are persisted in a JSON file:

    {"version": 2, "templates": {"<key>": {title, description, subject, body_text, placeholders, updated_at}}}

Placeholders use {{name}} syntax and are rendered with a sandboxed Jinja2
environment. HTML bodies are derived from the rendered plain text.
"""

import json
import logging
import os
import re
import tempfile
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from jinja2 import meta
from jinja2.exceptions import TemplateError, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import escape

from app.core.config import get_settings

logger = logging.getLogger(__name__)

STORAGE_VERSION = 2
KEY_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]{2,63}$")


DEFAULT_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "registration_activation": {
        "title": "Registration & Activation",
        "description": "Sent after a new user registers. Includes an activation link.",
        "subject": "Activate your {{app_name}} account",
        "body_text": (
            "Dear {{user_full_name}},\n\n"
            "Welcome to {{app_name}}.\n\n"
            "Please activate your account by clicking the link below:\n"
            "{{activation_link}}\n\n"
            "If you did not create this account, you can ignore this email.\n\n"
            "Regards,\n"
            "{{app_name}} Team"
        ),
        "placeholders": ["app_name", "user_full_name", "activation_link"],
    },
    "auth_code": {
        "title": "Authentication Code (2FA)",
        "description": "Sent during login to deliver a one-time authentication code.",
        "subject": "Your {{app_name}} authentication code",
        "body_text": (
            "Dear {{user_full_name}},\n\n"
            "Use the following authentication code to complete your login:\n"
            "{{otp_code}}\n\n"
            "This code expires in {{otp_expires_minutes}} minutes.\n\n"
            "If you did not try to sign in, please reset your password or contact support at {{support_email}}.\n\n"
            "Regards,\n"
            "{{app_name}} Team"
        ),
        "placeholders": ["app_name", "user_full_name", "otp_code", "otp_expires_minutes", "support_email"],
    },
    "application_success": {
        "title": "Successful Application",
        "description": "Sent when a job seeker successfully applies for a job.",
        "subject": "Application received: {{job_title}} at {{company_name}}",
        "body_text": (
            "Dear {{user_full_name}},\n\n"
            "We have received your application for {{job_title}} at {{company_name}}.\n\n"
            "You can review the job details here:\n"
            "{{job_link}}\n\n"
            "Thank you for using {{app_name}}.\n\n"
            "Regards,\n"
            "{{app_name}} Team"
        ),
        "placeholders": ["app_name", "user_full_name", "job_title", "company_name", "job_link"],
    },
    "interview_invitation": {
        "title": "Interview Invitation",
        "description": "Sent to invite a job seeker to an interview.",
        "subject": "Interview invitation: {{job_title}} at {{company_name}}",
        "body_text": (
            "Dear {{user_full_name}},\n\n"
            "You are invited to an interview for {{job_title}} at {{company_name}}.\n\n"
            "Date: {{interview_date}}\n"
            "Time: {{interview_time}}\n"
            "Location: {{interview_location}}\n\n"
            "If you need to reschedule, please contact us at {{support_email}}.\n\n"
            "Regards,\n"
            "{{company_name}} Recruitment Team"
        ),
        "placeholders": [
            "user_full_name", "job_title", "company_name", "interview_date",
            "interview_time", "interview_location", "support_email",
        ],
    },
    "application_rejected": {
        "title": "Application Rejected",
        "description": "Sent when an application is not successful.",
        "subject": "Update on your application: {{job_title}}",
        "body_text": (
            "Dear {{user_full_name}},\n\n"
            "Thank you for your interest in {{job_title}} at {{company_name}}.\n\n"
            "After careful consideration, we will not be moving forward with your application at this time.\n\n"
            "We encourage you to apply for other opportunities on {{app_name}}.\n\n"
            "Regards,\n"
            "{{company_name}} Recruitment Team"
        ),
        "placeholders": ["app_name", "user_full_name", "job_title", "company_name"],
    },
    "job_alert": {
        "title": "Job Alert",
        "description": "Sent when a new job matches a user's alert preferences.",
        "subject": "New job alert: {{job_title}}",
        "body_text": (
            "Hi {{user_full_name}},\n\n"
            "A new job was posted that may match your preferences:\n"
            "{{job_title}} at {{company_name}}\n\n"
            "View job:\n"
            "{{job_link}}\n\n"
            "If you no longer want to receive these alerts, you can unsubscribe here:\n"
            "{{unsubscribe_link}}\n\n"
            "Regards,\n"
            "{{app_name}} Team"
        ),
        "placeholders": ["app_name", "user_full_name", "job_title", "company_name", "job_link", "unsubscribe_link"],
    },
}


class TemplateNotFound(Exception):
    pass


class TemplateAlreadyExists(Exception):
    pass


class InvalidTemplate(ValueError):
    pass


_env = SandboxedEnvironment(autoescape=False, keep_trailing_newline=True)
_lock = threading.Lock()


def is_template_key(key: str) -> bool:
    return bool(KEY_PATTERN.match(key or ""))


def storage_path() -> str:
    return os.path.abspath(get_settings().email_templates_path)


def text_to_html(body_text: str) -> str:
    """Escape plain text and turn blank-line paragraphs into <p> blocks."""
    normalized = (body_text or "").replace("\r\n", "\n")
    paragraphs = re.split(r"\n{2,}", normalized)
    parts = []
    for paragraph in paragraphs:
        escaped = str(escape(paragraph)).replace("\n", "<br/>")
        parts.append(f"<p>{escaped}</p>")
    return "<!doctype html><html><body>" + "\n".join(parts) + "</body></html>"


def parse_placeholders(value) -> List[str]:
    """Accept a list or a comma/newline separated string; keep unique identifiers in order."""
    if value is None:
        return []
    items = value if isinstance(value, list) else re.split(r"[,\n]", str(value))
    seen = []
    for item in items:
        name = str(item).strip().strip("{}").strip()
        if name and re.match(r"^[A-Za-z_][A-Za-z0-9_]*$", name) and name not in seen:
            seen.append(name)
    return seen


def find_placeholders(*sources: str) -> List[str]:
    """Variables referenced by the given template sources."""
    found = set()
    for source in sources:
        found |= meta.find_undeclared_variables(_env.parse(source or ""))
    return sorted(found)


def validate_source(*sources: str) -> None:
    for source in sources:
        try:
            _env.parse(source or "")
        except TemplateSyntaxError as e:
            raise InvalidTemplate(f"Template syntax error on line {e.lineno}: {e.message}")


# ============================================================
# STORAGE
# ============================================================

def _read_store() -> Dict[str, Dict[str, Any]]:
    path = storage_path()
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            parsed = json.load(f)
    except (OSError, ValueError) as e:
        logger.error("Could not read email templates from %s: %s", path, e)
        return {}
    if not isinstance(parsed, dict) or not isinstance(parsed.get("templates"), dict):
        return {}
    return parsed["templates"]


def _write_store(templates: Dict[str, Dict[str, Any]]) -> None:
    """Write to a temp file in the same directory, then rename over the target."""
    path = storage_path()
    directory = os.path.dirname(path)
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".email-templates.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump({"version": STORAGE_VERSION, "templates": templates}, f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def _merge(key: str, stored: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    base = DEFAULT_TEMPLATES.get(key, {})
    stored = stored or {}
    body_text = stored.get("body_text", base.get("body_text", ""))
    placeholders = stored.get("placeholders") or base.get("placeholders") or find_placeholders(
        stored.get("subject", base.get("subject", "")), body_text
    )
    return {
        "key": key,
        "title": stored.get("title") or base.get("title") or key,
        "description": stored.get("description", base.get("description", "")) or "",
        "subject": stored.get("subject", base.get("subject", "")),
        "body_text": body_text,
        "body_html": text_to_html(body_text),
        "placeholders": placeholders,
        "is_custom": key not in DEFAULT_TEMPLATES,
        "updated_at": stored.get("updated_at"),
    }


# ============================================================
# PUBLIC API
# ============================================================

def list_templates() -> List[Dict[str, Any]]:
    with _lock:
        stored = _read_store()
    keys = list(DEFAULT_TEMPLATES) + sorted(k for k in stored if k not in DEFAULT_TEMPLATES)
    return [_merge(key, stored.get(key)) for key in keys]


def get_template(key: str) -> Dict[str, Any]:
    with _lock:
        stored = _read_store()
    if key not in DEFAULT_TEMPLATES and key not in stored:
        raise TemplateNotFound(key)
    return _merge(key, stored.get(key))


def create_template(
    key: str,
    title: str,
    subject: str,
    body_text: str,
    description: Optional[str] = None,
    placeholders=None,
) -> Dict[str, Any]:
    key = (key or "").strip()
    if not is_template_key(key):
        raise InvalidTemplate("Invalid key format")
    validate_source(subject, body_text)

    with _lock:
        stored = _read_store()
        if key in DEFAULT_TEMPLATES or key in stored:
            raise TemplateAlreadyExists(key)
        stored[key] = {
            "title": title.strip(),
            "description": (description or "").strip(),
            "subject": subject.strip(),
            "body_text": body_text,
            "placeholders": parse_placeholders(placeholders) or find_placeholders(subject, body_text),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        _write_store(stored)
        return _merge(key, stored[key])


def update_template(
    key: str,
    subject: str,
    body_text: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    placeholders=None,
) -> Dict[str, Any]:
    if not is_template_key(key):
        raise InvalidTemplate("Invalid template key")
    validate_source(subject, body_text)

    with _lock:
        stored = _read_store()
        if key not in DEFAULT_TEMPLATES and key not in stored:
            raise TemplateNotFound(key)
        current = _merge(key, stored.get(key))
        parsed_placeholders = parse_placeholders(placeholders)
        stored[key] = {
            "title": title.strip() if title else current["title"],
            "description": description if description is not None else current["description"],
            "subject": subject.strip(),
            "body_text": body_text,
            "placeholders": parsed_placeholders or current["placeholders"],
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        _write_store(stored)
        return _merge(key, stored[key])


def delete_template(key: str) -> Optional[Dict[str, Any]]:
    """
    Remove a custom template, or drop the override of a built-in one.
    Returns the restored default, or None when a custom template was deleted.
    """
    with _lock:
        stored = _read_store()
        if key not in stored:
            if key in DEFAULT_TEMPLATES:
                return _merge(key, None)
            raise TemplateNotFound(key)
        del stored[key]
        _write_store(stored)
    if key in DEFAULT_TEMPLATES:
        return _merge(key, None)
    return None


def base_context() -> Dict[str, Any]:
    settings = get_settings()
    return {
        "app_name": settings.app_name,
        "support_email": settings.support_email,
        "web_origin": settings.cors_origins[0] if settings.cors_origins else "",
    }


def render_strings(subject: str, body_text: str, context: Dict[str, Any]) -> Tuple[str, str, str]:
    """Render subject and body with context. Returns (subject, text, html)."""
    data = {**base_context(), **(context or {})}
    try:
        rendered_subject = _env.from_string(subject).render(**data)
        rendered_text = _env.from_string(body_text).render(**data)
    except TemplateError as e:
        raise InvalidTemplate(str(e))
    # Subjects are single-line headers
    rendered_subject = " ".join(rendered_subject.split())
    return rendered_subject, rendered_text, text_to_html(rendered_text)


def render_template(key: str, context: Dict[str, Any]) -> Tuple[str, str, str]:
    template = get_template(key)
    return render_strings(template["subject"], template["body_text"], context)


def sample_context(template: Dict[str, Any]) -> Dict[str, Any]:
    """Placeholder values for previews: [placeholder_name]."""
    return {name: f"[{name}]" for name in template["placeholders"]}
