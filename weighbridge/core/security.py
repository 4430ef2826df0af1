import time
import uuid
from dataclasses import dataclass
from typing import Literal

import bcrypt
import jwt

from weighbridge.core.config import settings
from weighbridge.core.errors import ValidationError


Role = Literal["super admin", "admin", "security", "operator", "user"]
ROLES: tuple[str, ...] = ("super admin", "admin", "security", "operator", "user")

# bcrypt only looks at the first 72 bytes of a password.
MAX_PASSWORD_BYTES = 72


def _now_s() -> int:
    return int(time.time())


def hash_password(password: str) -> str:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode("ascii")


def verify_password(password: str, stored: str) -> bool:
    raw = password.encode("utf-8")
    if len(raw) > MAX_PASSWORD_BYTES or not stored:
        return False
    try:
        return bcrypt.checkpw(raw, stored.encode("ascii"))
    except ValueError:
        # not a bcrypt hash
        return False


def create_access_token(*, sub: str, staff_id: str, role: Role, extra: dict | None = None) -> str:
    now = _now_s()
    payload = {
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + settings.access_token_ttl_seconds,
        "jti": str(uuid.uuid4()),
        "sub": sub,
        "staff_id": staff_id,
        "role": role,
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


@dataclass(frozen=True)
class Principal:
    sub: str
    staff_id: str
    role: Role
    jti: str
    expires_at: int


def decode_bearer_token(token: str) -> Principal:
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
    role = payload.get("role", "user")
    if role not in ROLES:
        role = "user"
    return Principal(
        sub=str(payload["sub"]),
        staff_id=str(payload["staff_id"]),
        role=role,
        jti=str(payload.get("jti") or ""),
        expires_at=int(payload["exp"]),
    )
