import os
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Load .env for local dev
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite:///./league_portal.db"

# Pool tuning only applies to a server database; SQLite gets its default pool
engine_kwargs = {}
if DATABASE_URL.startswith("postgresql"):
    engine_kwargs = {
        "pool_size": 5,
        "max_overflow": 5,
        "pool_timeout": 10,
        "pool_recycle": 300,  # recycle before the provider's idle timeout
        "connect_args": {"sslmode": "require"},
    }
elif DATABASE_URL.startswith("sqlite"):
    # calls arrive from the threadpool, not the thread that opened the connection
    engine_kwargs = {"connect_args": {"check_same_thread": False}}

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    echo=False,
    future=True,
    **engine_kwargs,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
    future=True,
)


def init_db() -> None:
    """Create the local tables if they are missing."""
    from league_portal.db.models import Base
    Base.metadata.create_all(bind=engine)
