import re
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from pwdlib import PasswordHash

from app.core.config import get_settings, parse_duration

password_hash = PasswordHash.recommended()
settings = get_settings()

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&]).{8,32}$")
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def hash_password(password: str) -> str:
    return password_hash.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return password_hash.verify(plain_password, hashed_password)


def is_strong_password(password: str) -> bool:
    return bool(PASSWORD_PATTERN.match(password or ""))


def access_token_lifetime_seconds() -> int:
    return parse_duration(settings.access_token_expires_in, 7 * 86400)


def _encode(claims: dict[str, Any], *, token_type: str, lifetime_seconds: int) -> str:
    expire = datetime.now(UTC) + timedelta(seconds=lifetime_seconds)
    payload: dict[str, Any] = {**claims, "type": token_type, "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(subject: str, **claims: Any) -> str:
    return _encode(
        {"sub": subject, **claims},
        token_type=ACCESS_TOKEN_TYPE,
        lifetime_seconds=access_token_lifetime_seconds(),
    )


def create_refresh_token(subject: str, **claims: Any) -> str:
    return _encode(
        {"sub": subject, **claims},
        token_type=REFRESH_TOKEN_TYPE,
        lifetime_seconds=parse_duration(settings.refresh_token_expires_in, 30 * 86400),
    )


def decode_token(token: str, *, expected_type: str = ACCESS_TOKEN_TYPE) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if payload.get("type", ACCESS_TOKEN_TYPE) != expected_type:
        raise ValueError("Invalid token type")
    return payload


def decode_access_token(token: str) -> dict[str, Any]:
    return decode_token(token, expected_type=ACCESS_TOKEN_TYPE)


def create_invitation_code(claims: dict[str, Any]) -> tuple[str, datetime]:
    lifetime = parse_duration(settings.invitation_expires_in, 7 * 86400)
    expire = datetime.now(UTC) + timedelta(seconds=lifetime)
    # jti keeps codes unique when the same inviter issues several per second
    payload = {**claims, "jti": secrets.token_hex(8), "exp": expire}
    code = jwt.encode(payload, settings.invitation_secret, algorithm=settings.jwt_algorithm)
    return code, expire


def decode_invitation_code(code: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            code,
            settings.invitation_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise ValueError("Invalid invitation code") from exc
