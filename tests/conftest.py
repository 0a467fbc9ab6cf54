from __future__ import annotations

import os

# Settings are read from the environment when authshops is first imported.
os.environ.setdefault("CORS_DOMAIN", "example.com")
os.environ.setdefault("CORS_PROTOCOL", "https")
os.environ.setdefault("JWT_SECRET", "test-secret-for-authshops-session-tokens")
os.environ.setdefault("PASSWORD_HASH_TIME_COST", "1")
os.environ.setdefault("PASSWORD_HASH_MEMORY_COST", "8192")
os.environ.setdefault("PASSWORD_HASH_PARALLELISM", "1")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

import threading
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from authshops.config import Settings
from authshops.domain.account import Account, Credentials, Shop
from authshops.domain.service import AuthService
from authshops.main import create_app
from authshops.repository import SHOP_NAME_CONSTRAINT, USER_NAME_CONSTRAINT, conflict_for_constraint
from authshops.security.rate_limiter import SlidingWindowRateLimiter


class FakeRepository:
    """In-memory repository mimicking the Postgres unique constraints and transactions."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.accounts: dict[str, Account] = {}
        self.password_hashes: dict[str, str] = {}
        self.shops: dict[str, Shop] = {}
        self.create_calls = 0

    def user_name_exists(self, user_name: str) -> bool:
        with self._lock:
            return any(account.user_name == user_name for account in self.accounts.values())

    def create_account(self, *, user_name: str, password_hash: str, shop_names: list[str]) -> Account:
        with self._lock:
            self.create_calls += 1
            if self.user_name_exists(user_name):
                raise conflict_for_constraint(USER_NAME_CONSTRAINT)
            if any(name in self.shops for name in shop_names):
                raise conflict_for_constraint(SHOP_NAME_CONSTRAINT)

            now = datetime.now(timezone.utc)
            user_id = str(uuid.uuid4())
            shops = [
                Shop(shop_id=str(uuid.uuid4()), shop_name=name, user_id=user_id, created_at=now)
                for name in shop_names
            ]
            account = Account(user_id=user_id, user_name=user_name, created_at=now, shops=shops)
            self.accounts[user_id] = account
            self.password_hashes[user_id] = password_hash
            for shop in shops:
                self.shops[shop.shop_name] = shop
            return account

    def get_credentials(self, user_name: str) -> Credentials | None:
        for account in self.accounts.values():
            if account.user_name == user_name:
                return Credentials(account=account, password_hash=self.password_hashes[account.user_id])
        return None

    def get_account(self, user_id: str) -> Account | None:
        return self.accounts.get(user_id)

    def get_shop(self, shop_name: str) -> Shop | None:
        return self.shops.get(shop_name)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def service(repository: FakeRepository) -> AuthService:
    return AuthService(repository)


@pytest.fixture
def api_client(service: AuthService):
    """Provide a FastAPI test client with isolated state and a tight rate limit."""
    app = create_app(Settings(cors_domain="example.com", cors_protocol="https"))
    app.state.auth_service = service
    app.state.rate_limiter = SlidingWindowRateLimiter(max_requests=5, window_seconds=60)

    # no context manager: the lifespan would open a real Postgres pool
    return TestClient(app)
