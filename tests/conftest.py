"""
Shared fixtures. Environment is pinned before the package is imported:
settings need a Fernet key and the session store a throwaway database.
"""
import os
import tempfile

from cryptography.fernet import Fernet

_tmp = tempfile.mkdtemp(prefix="league-portal-tests-")
os.environ["ENCRYPTION_KEY"] = Fernet.generate_key().decode()
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp}/sessions.db"
os.environ["APP_ENV"] = "local"
os.environ["SUPABASE_URL"] = "https://project.example.test"
os.environ["SUPABASE_ANON_KEY"] = "anon-key"

import pytest

from league_portal.schemas.auth import AuthSession, Identity
from league_portal.services.notifications import ToastQueue
from league_portal.services.resolver import SessionResolver

from tests.fakes import FakeAuthProvider, FakeLeagueRepository


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def toasts():
    return ToastQueue()


@pytest.fixture
def repo():
    return FakeLeagueRepository()


@pytest.fixture
def provider():
    return FakeAuthProvider()


@pytest.fixture
def resolver(provider, repo, toasts):
    return SessionResolver(provider, repo, toasts)


def make_session(user_id: str = "user-1", user_name: str = "striker9", expires_at=None) -> AuthSession:
    return AuthSession(
        access_token=f"access-{user_id}",
        refresh_token=f"refresh-{user_id}",
        expires_at=expires_at,
        user=Identity(id=user_id, email=f"{user_id}@example.test", user_name=user_name),
    )


async def signed_in(resolver, provider, session: AuthSession):
    """Start the resolver with `session` already on file."""
    provider.session = session
    await resolver.start()
    return resolver
