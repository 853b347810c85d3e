"""Database-backed JWT revocation list used by logout.

Only a SHA-256 hash of each token is stored.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from gst_invoicer.models.revoked_token import RevokedToken


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def revoke_token(db: Session, token: str, expires_at: datetime) -> None:
    """Add a token to the revocation list."""
    token_hash = _hash_token(token)
    existing = db.query(RevokedToken).filter(RevokedToken.token_hash == token_hash).first()
    if existing:
        return

    entry = RevokedToken(
        token_hash=token_hash,
        expires_at=expires_at,
        revoked_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    db.flush()


def is_token_revoked(db: Session, token: str) -> bool:
    """Return True if the token has been revoked."""
    token_hash = _hash_token(token)
    entry = db.query(RevokedToken).filter(RevokedToken.token_hash == token_hash).first()
    if entry is None:
        return False

    if _as_utc(entry.expires_at) <= datetime.now(timezone.utc):
        db.delete(entry)
        db.flush()
        return False

    return True
