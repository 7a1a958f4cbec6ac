from __future__ import annotations

from typing import Optional

from pydantic import ValidationError
from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from league_portal.core.crypto import decrypt_token, encrypt_token
from league_portal.core.logging import get_logger
from league_portal.db.engine import SessionLocal
from league_portal.db.models import StoredSession
from league_portal.db.session import session_scope
from league_portal.schemas.auth import AuthSession, Identity

logger = get_logger(__name__)


class SessionStore:
    """Keeps the provider session across restarts (encrypted at rest)."""

    def __init__(self, factory: sessionmaker = SessionLocal):
        self.factory = factory

    def save(self, session: AuthSession) -> None:
        with session_scope(self.factory) as db:
            # one live session per process; older rows are superseded
            db.execute(delete(StoredSession))
            db.add(StoredSession(
                user_id=session.user.id,
                access_token=encrypt_token(session.access_token),
                refresh_token=encrypt_token(session.refresh_token),
                token_type=session.token_type,
                expires_at=session.expires_at,
                user_json=session.user.model_dump_json(),
            ))

    def load_latest(self) -> Optional[AuthSession]:
        with session_scope(self.factory) as db:
            rec = (
                db.query(StoredSession)
                .order_by(StoredSession.id.desc())
                .first()
            )
            if rec is None:
                return None

            access_token = decrypt_token(rec.access_token)
            if not access_token:
                logger.warning("Stored session for %s could not be decrypted; ignoring it", rec.user_id)
                return None
            try:
                user = Identity.model_validate_json(rec.user_json)
            except ValidationError:
                logger.warning("Stored session for %s has an unreadable identity; ignoring it", rec.user_id)
                return None

            return AuthSession(
                access_token=access_token,
                refresh_token=decrypt_token(rec.refresh_token),
                token_type=rec.token_type or "bearer",
                expires_at=rec.expires_at,
                user=user,
            )

    def clear(self) -> None:
        with session_scope(self.factory) as db:
            db.execute(delete(StoredSession))
