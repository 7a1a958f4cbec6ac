# league_portal/db/session.py
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.exc import OperationalError
from league_portal.db.engine import SessionLocal


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    db = factory()
    try:
        yield db
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
    finally:
        try:
            db.close()
        except OperationalError:
            # underlying connection already dead; drop the pool so the next call reconnects
            bind = factory.kw.get("bind")
            if bind is not None:
                bind.dispose()
