import logging
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from weighbridge.core.errors import AuthExpired, ConflictError, NotFoundError, ValidationError
from weighbridge.core.security import Principal, create_access_token, hash_password, verify_password
from weighbridge.domains.identity.models import RevokedToken, Staff

logger = logging.getLogger(__name__)


def register_staff(
    db: Session,
    *,
    email: str,
    username: str,
    password: str,
    department: str,
    role: str = "user",
    full_name: str | None = None,
    is_superuser: bool = False,
) -> Staff:
    email = email.strip().lower()
    username = username.strip()
    exists = db.query(Staff).filter(or_(Staff.email == email, Staff.username == username)).first()
    if exists:
        raise ConflictError("Staff with this email or username already exists")

    staff = Staff(
        email=email,
        username=username,
        full_name=full_name,
        role=role,
        department=department,
        password_hash=hash_password(password),
        is_superuser=is_superuser,
    )
    db.add(staff)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Staff with this email or username already exists")
    db.refresh(staff)
    return staff


def login(db: Session, *, identifier: str, password: str) -> str:
    ident = identifier.strip()
    staff: Staff | None = (
        db.query(Staff).filter(or_(Staff.username == ident, Staff.email == ident.lower())).one_or_none()
    )
    if not staff or not verify_password(password, staff.password_hash):
        logger.info("Login failed for identifier=%r", ident)
        raise AuthExpired("Invalid credentials")
    if not staff.is_active:
        raise AuthExpired("Account disabled")
    return create_access_token(sub=staff.username, staff_id=staff.id, role=staff.role)  # type: ignore[arg-type]


def logout(db: Session, principal: Principal) -> None:
    if not principal.jti or db.get(RevokedToken, principal.jti):
        return
    db.add(
        RevokedToken(
            jti=principal.jti,
            staff_id=principal.staff_id,
            expires_at=datetime.fromtimestamp(principal.expires_at, tz=timezone.utc),
        )
    )
    db.commit()


def is_token_revoked(db: Session, jti: str) -> bool:
    if not jti:
        return False
    return db.get(RevokedToken, jti) is not None


def get_staff(db: Session, staff_id: str) -> Staff:
    staff = db.get(Staff, staff_id)
    if not staff:
        raise NotFoundError("Staff not found", staff_id=staff_id)
    return staff


def list_staff(
    db: Session,
    *,
    department: str | None = None,
    role: str | None = None,
    skip: int = 0,
    limit: int = 100,
) -> list[Staff]:
    q = db.query(Staff)
    if department:
        q = q.filter(Staff.department == department)
    if role:
        q = q.filter(Staff.role == role)
    return q.order_by(Staff.created_at.asc(), Staff.username.asc()).offset(skip).limit(limit).all()


def update_staff(db: Session, staff_id: str, changes: dict) -> Staff:
    """
    Apply a partial update. Only keys present in `changes` are touched; a
    `password` key is hashed before it is stored.
    """
    staff = get_staff(db, staff_id)
    changes = dict(changes)
    if "email" in changes and changes["email"] is not None:
        changes["email"] = changes["email"].strip().lower()
    if "username" in changes and changes["username"] is not None:
        changes["username"] = changes["username"].strip()

    taken = []
    if changes.get("email") and changes["email"] != staff.email:
        taken.append(Staff.email == changes["email"])
    if changes.get("username") and changes["username"] != staff.username:
        taken.append(Staff.username == changes["username"])
    if taken and db.query(Staff).filter(or_(*taken), Staff.id != staff.id).first():
        raise ConflictError("Staff with this email or username already exists")

    password = changes.pop("password", None)
    if password:
        staff.password_hash = hash_password(password)
    for field, value in changes.items():
        if value is None and field in ("email", "username", "role", "department", "is_active", "is_superuser"):
            continue
        setattr(staff, field, value)
    staff.updated_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Staff with this email or username already exists")
    db.refresh(staff)
    logger.info("Staff updated id=%s fields=%s", staff.id, sorted(changes) + (["password"] if password else []))
    return staff


def delete_staff(db: Session, staff_id: str, *, acting_staff_id: str) -> None:
    if staff_id == acting_staff_id:
        raise ValidationError("You cannot delete your own account")
    staff = get_staff(db, staff_id)
    db.delete(staff)
    db.commit()
    logger.info("Staff deleted id=%s by=%s", staff_id, acting_staff_id)


def ensure_bootstrap_admin(db: Session, *, username: str, email: str, password: str) -> Staff | None:
    """Create the first super admin when nobody can sign in yet. Returns None when staff already exist."""
    if db.query(Staff.id).first() is not None:
        return None
    staff = register_staff(
        db,
        email=email,
        username=username,
        password=password,
        department="HR",
        role="super admin",
        is_superuser=True,
    )
    logger.info("Bootstrap super admin created username=%s", staff.username)
    return staff
