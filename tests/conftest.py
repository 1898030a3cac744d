"""Shared fixtures: in-memory database, fake Razorpay client, API client."""

import os

# Settings are cached on first import; configure the environment before that
os.environ["DEBUG"] = "true"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "test_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "whsec_test"
os.environ["AUTOPAY_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from razorpay.errors import BadRequestError, SignatureVerificationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from billing.app import create_app
from billing.db.session import get_db
from billing.models import Base
from billing.models.user import User
from billing.schemas.package import PackageData
from billing.services.auth_service import create_jwt
from billing.services.autopay_service import AutopayService
from billing.services.gateway import RazorpayGateway, get_gateway
from billing.services.package_service import save_package

VALID_SIGNATURE = "valid_signature"


class FakeOrders:
    def __init__(self):
        self.created: list[dict] = []
        self.by_id: dict[str, dict] = {}
        self.errors: list[Exception] = []
        self.calls = 0

    def create(self, data: dict) -> dict:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        self.created.append(data)
        order = {
            "id": f"order_{len(self.created):06d}",
            "entity": "order",
            "amount": data["amount"],
            "currency": data["currency"],
            "receipt": data["receipt"],
            "notes": data["notes"],
            "status": "created",
        }
        self.by_id[order["id"]] = order
        return order

    def fetch(self, order_id: str) -> dict:
        if order_id not in self.by_id:
            raise BadRequestError("The id provided does not exist")
        return {**self.by_id[order_id], "status": "paid"}


class FakePayments:
    def __init__(self):
        self.recurring: list[dict] = []
        self.records: dict[str, dict] = {}
        self.errors: list[Exception] = []

    def createRecurring(self, data: dict) -> dict:
        if self.errors:
            raise self.errors.pop(0)
        self.recurring.append(data)
        return {
            "razorpay_payment_id": f"pay_rec_{len(self.recurring):04d}",
            "razorpay_order_id": data["order_id"],
        }

    def fetch(self, payment_id: str) -> dict:
        return self.records.get(payment_id, {"id": payment_id, "entity": "payment", "status": "captured"})


class FakeCustomers:
    def __init__(self):
        self.requests: list[dict] = []
        self.by_key: dict[tuple, dict] = {}

    def create(self, data: dict) -> dict:
        self.requests.append(data)
        key = (data["email"], data["contact"])
        if key not in self.by_key:
            self.by_key[key] = {"id": f"cust_{len(self.by_key) + 1:04d}", "entity": "customer", **data}
        return self.by_key[key]


class FakeUtility:
    def verify_payment_signature(self, params: dict) -> bool:
        if params["razorpay_signature"] != VALID_SIGNATURE:
            raise SignatureVerificationError("Razorpay Signature Verification Failed")
        return True

    def verify_webhook_signature(self, body: str, signature: str, secret: str) -> bool:
        if signature != VALID_SIGNATURE:
            raise SignatureVerificationError("Razorpay Signature Verification Failed")
        return True


class FakeRazorpayClient:
    """Stands in for ``razorpay.Client``; only the resources the gateway uses."""

    def __init__(self):
        self.order = FakeOrders()
        self.payment = FakePayments()
        self.customer = FakeCustomers()
        self.utility = FakeUtility()
        self.auth = ("rzp_test_key", "test_secret")


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_jwt(user_id)}"}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def razorpay_client():
    return FakeRazorpayClient()


@pytest.fixture
def gateway(razorpay_client):
    return RazorpayGateway("rzp_test_key", "test_secret", webhook_secret="whsec_test", client=razorpay_client)


@pytest.fixture
async def user(db):
    user = User(
        id="user_1",
        email="asha@example.com",
        name="Asha Verma",
        phone="9876543210",
        role="Business",
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def admin_user(db):
    admin = User(id="admin_1", email="admin@example.com", name="Admin", role="Admin", is_admin=True)
    db.add(admin)
    await db.commit()
    return admin


@pytest.fixture
async def one_time_package(db):
    return await save_package(
        db,
        PackageData(
            id="pkg_basic",
            title="Business Basic",
            type="Business",
            payment_type="one-time",
            price=1000,
        ),
    )


@pytest.fixture
async def monthly_package(db):
    return await save_package(
        db,
        PackageData(
            id="pkg_growth",
            title="Business Growth",
            type="Business",
            payment_type="recurring",
            billing_cycle="monthly",
            price=5988,
            monthly_price=499,
            setup_fee=200,
            advance_payment_months=1,
            duration_months=12,
        ),
    )


@pytest.fixture
async def yearly_package(db):
    return await save_package(
        db,
        PackageData(
            id="pkg_influencer",
            title="Influencer Pro",
            type="Influencer",
            payment_type="recurring",
            billing_cycle="yearly",
            price=5000,
            setup_fee=200,
            duration_months=24,
        ),
    )


@pytest.fixture
async def client(session_factory, gateway):
    app = create_app()

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.state.autopay = AutopayService(session_factory, gateway, interval_seconds=300)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def user_headers(user):
    return auth_headers(user.id)


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user.id)
