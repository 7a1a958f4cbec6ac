from datetime import datetime

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Text, Integer, DateTime, func

class Base(DeclarativeBase):
    pass

class StoredSession(Base):
    """
    The signed-in user's provider session, kept across restarts.
    Tokens are Fernet-encrypted; only the newest row is ever read.
    """
    __tablename__ = "auth_sessions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)

    access_token: Mapped[str] = mapped_column(Text)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    token_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    expires_at: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_json: Mapped[str] = mapped_column(Text)  # serialized Identity

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
