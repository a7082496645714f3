"""
Pytest configuration and fixtures.
"""

import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = ""
os.environ["APP_ENV"] = "development"

from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import society.models  # noqa: F401
from society.api import deps
from society.database import Base, DatabaseSupervisor
from society.errors import SideEffectError
from society.fsm.states import UserRole
from society.main import app
from society.services.gateway_service import RazorpayGateway, compute_signature
from society.services.payment_service import PaymentService
from society.services.post_commit import PostCommitDispatcher
from society.services.receipt_service import ReceiptService
from society.services.storage_service import StoredObject
from society.services.token_service import TokenService
from society.services.user_service import UserService

KEY_SECRET = "rzp_test_secret"
WEBHOOK_SECRET = "rzp_webhook_secret"


def sign(order_id: str, payment_id: str, secret: str = KEY_SECRET) -> str:
    """Signature Razorpay checkout hands back for ``order_id|payment_id``."""
    return compute_signature(secret, f"{order_id}|{payment_id}")


class FakeOrders:
    def __init__(self):
        self.created = []
        self.error: Optional[Exception] = None

    def create(self, data):
        if self.error:
            raise self.error
        self.created.append(data)
        return {
            "id": f"order_{len(self.created)}",
            "amount": data["amount"],
            "currency": data["currency"],
            "receipt": data["receipt"],
            "status": "created",
        }


class FakeRazorpayClient:
    """Stands in for ``razorpay.Client``; only the orders resource is used."""

    def __init__(self):
        self.order = FakeOrders()


class FakeStorage:
    def __init__(self):
        self.uploads = []
        self.fail = False

    async def upload(self, data: bytes, folder: str, filename: Optional[str] = None) -> StoredObject:
        if self.fail:
            raise SideEffectError("File upload failed")
        self.uploads.append({"folder": folder, "filename": filename, "data": data})
        return StoredObject(
            url=f"https://files.example.com/{folder}/{filename}.html",
            object_id=f"{folder}/{filename}",
        )


class FakeNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False

    async def send_payment_confirmation(self, payment, owner) -> None:
        if self.fail:
            raise SideEffectError("Email could not be sent")
        self.sent.append({"payment_id": payment.id, "email": owner.email})


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so background sessions see committed rows."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for a test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def razorpay_client():
    return FakeRazorpayClient()


@pytest.fixture
def gateway(razorpay_client):
    return RazorpayGateway(
        key_id="rzp_test_key",
        key_secret=KEY_SECRET,
        webhook_secret=WEBHOOK_SECRET,
        client=razorpay_client,
    )


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def dispatcher():
    return PostCommitDispatcher(timeout=5.0)


@pytest.fixture
def receipts(storage, session_factory):
    return ReceiptService(storage, session_factory, society_name="Green Valley Society")


@pytest.fixture
def payment_service(db, gateway, receipts, notifier, dispatcher):
    return PaymentService(db, gateway, receipts, notifier, dispatcher)


@pytest.fixture
def tokens():
    return TokenService(secret_key="test-secret-key", expire_minutes=60)


@pytest.fixture
def make_user(db):
    """Factory for committed accounts."""
    counter = {"n": 0}

    async def _make(
        role: UserRole = UserRole.RESIDENT,
        email: Optional[str] = None,
        password: str = "secret123",
        is_active: bool = True,
    ):
        counter["n"] += 1
        n = counter["n"]
        user = await UserService(db).register(
            name=f"Resident {n}",
            email=email or f"resident{n}@example.com",
            password=password,
            phone="9876543210",
            flat_number=str(100 + n),
            wing="A",
            floor=1,
            role=role,
        )
        user.is_active = is_active
        await db.commit()
        return user

    return _make


@pytest.fixture
def auth_headers(tokens):
    def _headers(user):
        return {"Authorization": f"Bearer {tokens.issue(user.id)}"}

    return _headers


@pytest.fixture
def healthy_supervisor():
    supervisor = DatabaseSupervisor(None)
    supervisor.healthy = True
    return supervisor


@pytest_asyncio.fixture
async def client(
    session_factory, gateway, storage, notifier, dispatcher, tokens, healthy_supervisor
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with external services replaced."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides = {
        deps.get_db: override_get_db,
        deps.get_session_factory: lambda: session_factory,
        deps.get_supervisor: lambda: healthy_supervisor,
        deps.get_gateway: lambda: gateway,
        deps.get_storage: lambda: storage,
        deps.get_email_service: lambda: notifier,
        deps.get_dispatcher: lambda: dispatcher,
        deps.get_token_service: lambda: tokens,
    }

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await dispatcher.drain()
    app.dependency_overrides = {}
