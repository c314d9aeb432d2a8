# notes_app/services/verification.py
"""
One-time-code verifications keyed by (target, type).

A verification is prepared (secret generated, row upserted, code returned to
be emailed) and later checked with ``is_code_valid``. Single-use flows call
``consume_verification`` once the code checks out; 2FA keeps its row.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy import or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from notes_app.core.logging import get_logger
from notes_app.models.user import new_id
from notes_app.models.verification import Verification
from notes_app.utils import totp

logger = get_logger(__name__)

ONBOARDING = "onboarding"
RESET_PASSWORD = "reset-password"
CHANGE_EMAIL = "change-email"
TWO_FA = "2fa"
TWO_FA_VERIFY = "2fa-verify"

# dialects with INSERT .. ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


@dataclass(frozen=True)
class PreparedVerification:
    otp: str
    verify_url: str
    redirect_to: str


def get_redirect_to_url(base_url: str, *, type: str, target: str, redirect_to: Optional[str] = None) -> str:
    params = {"type": type, "target": target}
    if redirect_to:
        params["redirectTo"] = redirect_to
    return f"{base_url.rstrip('/')}/verify?{urlencode(params)}"


def totp_config(row: Verification) -> totp.TOTPConfig:
    return totp.TOTPConfig(
        secret=row.secret,
        period=row.period,
        digits=row.digits,
        algorithm=row.algorithm,
        char_set=row.char_set,
    )


def get_verification(db: Session, *, type: str, target: str) -> Optional[Verification]:
    return db.query(Verification).filter(Verification.target == target, Verification.type == type).first()


def upsert_verification(
    db: Session,
    *,
    type: str,
    target: str,
    config: totp.TOTPConfig,
    expires_at: Optional[datetime],
) -> Verification:
    """
    Create or replace the row for (target, type) in one statement.

    Concurrent callers for the same key never conflict; the last write wins.
    """
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"no upsert support for {dialect}")

    values = {
        "secret": config.secret,
        "algorithm": config.algorithm,
        "digits": config.digits,
        "period": config.period,
        "char_set": config.char_set,
        "expires_at": expires_at,
        "created_at": datetime.utcnow(),
    }
    stmt = insert(Verification).values(id=new_id(), type=type, target=target, **values)
    stmt = stmt.on_conflict_do_update(index_elements=["target", "type"], set_=values)
    db.execute(stmt)
    db.commit()
    return get_verification(db, type=type, target=target)


def prepare_verification(
    db: Session,
    *,
    type: str,
    target: str,
    period: int,
    base_url: str,
    redirect_to: Optional[str] = None,
) -> PreparedVerification:
    # relative for our own redirect, absolute for the emailed link
    redirect_to_url = get_redirect_to_url("", type=type, target=target, redirect_to=redirect_to)
    otp, config = totp.generate_totp(algorithm="SHA256", period=period)
    upsert_verification(
        db,
        type=type,
        target=target,
        config=config,
        expires_at=datetime.utcnow() + timedelta(seconds=period),
    )
    logger.info("verification prepared type=%s", type)
    verify_url = f"{base_url.rstrip('/')}{redirect_to_url}&{urlencode({'code': otp})}"
    return PreparedVerification(otp=otp, verify_url=verify_url, redirect_to=redirect_to_url)


def is_code_valid(db: Session, *, type: str, target: str, code: str) -> bool:
    row = (
        db.query(Verification)
        .filter(
            Verification.target == target,
            Verification.type == type,
            or_(Verification.expires_at > datetime.utcnow(), Verification.expires_at.is_(None)),
        )
        .first()
    )
    if not row:
        return False
    return totp.verify_totp(code, totp_config(row), window=1)


def consume_verification(db: Session, *, type: str, target: str) -> None:
    db.query(Verification).filter(Verification.target == target, Verification.type == type).delete(
        synchronize_session=False
    )
    db.commit()
    logger.info("verification consumed type=%s", type)


def start_two_factor_enrollment(db: Session, *, user_id: str, period_seconds: int) -> Verification:
    """Fresh authenticator secret, pending until the first code is confirmed."""
    _, config = totp.generate_totp()
    return upsert_verification(
        db,
        type=TWO_FA_VERIFY,
        target=user_id,
        config=config,
        expires_at=datetime.utcnow() + timedelta(seconds=period_seconds),
    )


def confirm_two_factor_enrollment(db: Session, *, user_id: str) -> Verification:
    """Turn the pending 2fa-verify row into the persistent 2fa row."""
    pending = get_verification(db, type=TWO_FA_VERIFY, target=user_id)
    if pending is None:
        raise LookupError("no pending two factor enrollment")
    db.query(Verification).filter(Verification.target == user_id, Verification.type == TWO_FA).delete(
        synchronize_session=False
    )
    pending.type = TWO_FA
    pending.expires_at = None
    db.commit()
    db.refresh(pending)
    logger.info("two factor enabled for user %s", user_id)
    return pending


def is_two_factor_enabled(db: Session, user_id: str) -> bool:
    return get_verification(db, type=TWO_FA, target=user_id) is not None


def disable_two_factor(db: Session, user_id: str) -> None:
    db.query(Verification).filter(Verification.target == user_id, Verification.type == TWO_FA).delete(
        synchronize_session=False
    )
    db.commit()
    logger.info("two factor disabled for user %s", user_id)