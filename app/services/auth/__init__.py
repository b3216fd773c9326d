from app.services.auth.accounts import (
    authenticate_user,
    create_user_with_member,
    ensure_identity_available,
    issue_tokens,
    normalize_email,
    normalize_phone,
    require_identity,
)

__all__ = [
    "authenticate_user",
    "create_user_with_member",
    "ensure_identity_available",
    "issue_tokens",
    "normalize_email",
    "normalize_phone",
    "require_identity",
]
