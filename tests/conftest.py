"""Pytest configuration and fixtures."""

import os
import time
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient
from jwt.algorithms import ECAlgorithm

# Signing key for test tokens; its public half is the configured JWK
TEST_SIGNING_KEY = ec.generate_private_key(ec.SECP256R1())

# Set test environment variables before importing application modules
os.environ["APP_ENV"] = "test"
os.environ["DEBUG"] = "true"
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SECRET_KEY"] = ""
os.environ["SUPABASE_SIGNING_KEY_JWK"] = ECAlgorithm.to_jwk(TEST_SIGNING_KEY.public_key())
os.environ["PAYMENT_SIMULATION_DELAY_SECONDS"] = "0"
os.environ["SESSION_COOKIE_SECURE"] = "false"
os.environ["ADMIN_EMAILS"] = "owner@example.com"
os.environ.pop("PROMO_CODES", None)

BUYER_ID = "550e8400-e29b-41d4-a716-446655440000"
SELLER_ID = "660e8400-e29b-41d4-a716-446655440000"
SESSION_TOKEN = "a" * 64


def _clear_caches() -> None:
    from storefront.api.middleware.auth import get_signing_key
    from storefront.core.config import get_settings
    from storefront.core.local_storage import get_shared_storage
    from storefront.core.supabase import get_supabase_client
    from storefront.services.persistence import get_persistence_adapter

    for cached in (
        get_settings,
        get_shared_storage,
        get_supabase_client,
        get_persistence_adapter,
        get_signing_key,
    ):
        cached.cache_clear()


@pytest.fixture(autouse=True)
def local_storage_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point local storage at a fresh directory for every test.

    Yields:
        Path: The local storage directory.
    """
    storage_dir = tmp_path / "storefront"
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(storage_dir))
    _clear_caches()
    yield storage_dir
    _clear_caches()


@pytest.fixture
def test_settings() -> Any:
    """Provide settings loaded from the test environment."""
    from storefront.core.config import get_settings

    return get_settings()


@pytest.fixture
def mock_supabase_client() -> MagicMock:
    """Provide a mocked Supabase client.

    Returns:
        MagicMock: Mocked client whose queries return no rows by default.
    """
    mock_client = MagicMock()
    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.order.return_value.execute.return_value = mock_response
    mock_client.table.return_value.select.return_value.eq.return_value.execute.return_value = mock_response
    return mock_client


@pytest.fixture
def memory_storage() -> Any:
    from storefront.core.local_storage import MemoryStorage

    return MemoryStorage()


@pytest.fixture
def local_adapter(memory_storage: Any) -> Any:
    """Adapter with no remote store, so every record lives in local storage."""
    from storefront.services.persistence import PersistenceAdapter

    return PersistenceAdapter(remote=None, local=memory_storage, timeout_seconds=0.5)


@pytest.fixture
def buyer() -> Any:
    from storefront.schemas.auth import UserContext

    return UserContext(user_id=UUID(BUYER_ID), email="buyer@example.com", role="authenticated")


@pytest.fixture
def session_state() -> Any:
    """Guest session backed by in-memory storage."""
    from storefront.core.local_storage import MemoryStorage
    from storefront.core.session import SessionState

    return SessionState(token=SESSION_TOKEN, storage=MemoryStorage())


@pytest.fixture
def sample_products() -> list[Any]:
    """Two catalog products, one discounted."""
    from storefront.schemas.common import RecordSource
    from storefront.schemas.product import Product

    now = datetime.now(timezone.utc)
    return [
        Product(
            id="prod-headphones",
            name="Wireless Headphones",
            description="Noise cancelling over-ear headphones",
            category="Headphone",
            price=Decimal("99.99"),
            offer_price=Decimal("79.99"),
            images=["https://cdn.example.com/headphones.png"],
            bestseller=True,
            created_at=now,
            source=RecordSource.LOCAL,
        ),
        Product(
            id="prod-watch",
            name="Smart Watch",
            description="Fitness tracking watch",
            category="Watch",
            price=Decimal("50.00"),
            created_at=now - timedelta(days=1),
            source=RecordSource.LOCAL,
        ),
    ]


@pytest.fixture
def catalog(sample_products: list[Any]) -> dict[str, Any]:
    return {product.id: product for product in sample_products}


@pytest.fixture
def seeded_adapter(local_adapter: Any, memory_storage: Any, sample_products: list[Any]) -> Any:
    """Local-only adapter whose product log holds the sample products."""
    from storefront.services.codecs import PRODUCTS

    memory_storage.set_json(PRODUCTS.local_key, [PRODUCTS.to_local(p) for p in sample_products])
    return local_adapter


@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Build ES256 tokens signed with the test signing key."""

    def create_token(
        sub: str = BUYER_ID,
        email: str | None = "buyer@example.com",
        app_role: str | None = None,
        exp_offset: int = 3600,
    ) -> str:
        now = int(time.time())
        payload = {
            "sub": sub,
            "email": email,
            "role": "authenticated",
            "user_metadata": {"role": app_role} if app_role else {},
            "exp": now + exp_offset,
            "iat": now,
        }
        return jwt.encode(payload, TEST_SIGNING_KEY, algorithm="ES256")

    return create_token


@pytest.fixture
def buyer_headers(token_factory: Callable[..., str]) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_factory()}", "X-Session-Token": SESSION_TOKEN}


@pytest.fixture
def seller_headers(token_factory: Callable[..., str]) -> dict[str, str]:
    token = token_factory(sub=SELLER_ID, email="seller@example.com", app_role="seller")
    return {"Authorization": f"Bearer {token}", "X-Session-Token": "b" * 64}


@pytest.fixture
def client(seeded_adapter: Any) -> Generator[TestClient, None, None]:
    """Provide a test client whose records live in in-memory local storage.

    Yields:
        TestClient: FastAPI test client.
    """
    from storefront.main import app
    from storefront.services.persistence import get_persistence_adapter

    app.dependency_overrides[get_persistence_adapter] = lambda: seeded_adapter
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
