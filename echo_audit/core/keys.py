"""
Storage key scheme. Existing stores depend on these exact formats.
"""

CURRENT_SESSION_KEY = "current_session"


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def user_email_key(email: str) -> str:
    return f"user_email:{email.lower()}"


def project_key(project_id: str) -> str:
    return f"project:{project_id}"


def user_projects_key(user_id: str) -> str:
    return f"user_projects:{user_id}"


def audit_key(audit_id: str) -> str:
    return f"audit:{audit_id}"


def project_audits_key(project_id: str) -> str:
    return f"project_audits:{project_id}"
