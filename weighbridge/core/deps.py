import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from weighbridge.core.db import SessionLocal
from weighbridge.core.errors import AuthExpired, PermissionDenied
from weighbridge.core.security import Principal, decode_bearer_token
from weighbridge.domains.identity.service import is_token_revoked


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    auth = request.headers.get("authorization") or ""
    prefix = "bearer "
    if not auth.lower().startswith(prefix):
        raise AuthExpired("Missing bearer token")
    token = auth[len(prefix) :].strip()
    try:
        principal = decode_bearer_token(token)
    except jwt.ExpiredSignatureError:
        raise AuthExpired("Token expired")
    except (jwt.InvalidTokenError, KeyError):
        raise AuthExpired("Invalid token")
    if is_token_revoked(db, principal.jti):
        raise AuthExpired("Token revoked")
    return principal


def require_roles(allowed: set[str]):
    def _inner(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in allowed and principal.role != "super admin":
            raise PermissionDenied("Insufficient role", role=principal.role)
        return principal

    return _inner


# Role groups used by the routers.
GATE_ROLES = {"admin", "security"}
YARD_ROLES = {"admin", "operator", "security"}
PURCHASE_ROLES = {"admin", "user"}
APPROVER_ROLES = {"admin"}
STAFF_ADMIN_ROLES = {"super admin"}
CATALOG_ADMIN_ROLES = {"admin"}
