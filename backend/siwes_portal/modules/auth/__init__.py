# Authentication module

from siwes_portal.modules.auth.dependencies import (
    AuthenticatedSession,
    can_access_student,
    get_accessible_student,
    get_current_admin,
    get_current_industry_supervisor,
    get_current_school_supervisor,
    get_current_session,
    get_current_student,
    get_current_user,
    get_current_user_allow_password_change,
    load_student,
    require_roles,
    resolve_token_user,
)

__all__ = [
    "AuthenticatedSession",
    "can_access_student",
    "get_accessible_student",
    "get_current_admin",
    "get_current_industry_supervisor",
    "get_current_school_supervisor",
    "get_current_session",
    "get_current_student",
    "get_current_user",
    "get_current_user_allow_password_change",
    "load_student",
    "require_roles",
    "resolve_token_user",
]
