# Standard Library
from decimal import Decimal
from typing import AsyncGenerator, Dict, List, Optional

# Third-Party Libraries
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

# First-Party Libraries
import cedar.checkout.infrastructure.orm  # noqa: F401
import cedar.identity.infrastructure.orm  # noqa: F401
import cedar.notifications.infrastructure.orm  # noqa: F401
import cedar.orders.infrastructure.orm  # noqa: F401
import cedar.quotes.infrastructure.orm  # noqa: F401
from cedar.checkout.infrastructure.orm import PickupLocationDB
from cedar.core.database import get_db_session
from cedar.core.utils import utcnow
from cedar.identity.domain.entities import IdentitySnapshot, VerificationStatus
from cedar.identity.infrastructure.clerk import create_session_token
from cedar.identity.infrastructure.orm import BusinessProfileDB
from cedar.main import app
from cedar.notifications.domain.sender import AbstractEmailSender
from cedar.notifications.interfaces.dependencies import get_email_sender

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# --- Database ---


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database and session for each test."""
    engine: AsyncEngine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    TestingSessionLocal = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with TestingSessionLocal() as session:
        yield session

    await engine.dispose()


# --- Email ---


class RecordingEmailSender(AbstractEmailSender):
    """Keeps sent emails in memory; can be told to fail or to raise."""

    def __init__(self):
        self.sent: List[Dict[str, str]] = []
        self.fail = False
        self.error: Optional[Exception] = None

    async def send_email(
        self,
        recipient_email: str,
        subject: str,
        html_content: str,
        sender_email: Optional[str] = None,
    ) -> bool:
        if self.error is not None:
            raise self.error
        if self.fail:
            return False
        self.sent.append({"recipient_email": recipient_email, "subject": subject, "html_content": html_content})
        return True


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


# --- HTTP client ---


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session: AsyncSession, email_sender: RecordingEmailSender) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# --- Identities ---


def bearer(clerk_user_id: str, email: Optional[str] = None, name: Optional[str] = None, role: Optional[str] = None):
    token = create_session_token(clerk_user_id, email=email, name=name, role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return bearer("user_admin", email="admin@cedarelevators.com", name="Asha Admin", role="admin")


@pytest.fixture
def individual_headers() -> Dict[str, str]:
    return bearer("user_individual", email="ravi@example.com", name="Ravi Kumar")


@pytest_asyncio.fixture
async def verified_headers(db_session: AsyncSession) -> Dict[str, str]:
    db_session.add(
        BusinessProfileDB(
            clerk_user_id="user_verified",
            company_name="Lift Systems Pvt Ltd",
            verification_status=VerificationStatus.VERIFIED.value,
        )
    )
    await db_session.commit()
    return bearer("user_verified", email="buyer@liftsystems.in", name="Meera Shah")


@pytest_asyncio.fixture
async def unverified_headers(db_session: AsyncSession) -> Dict[str, str]:
    db_session.add(
        BusinessProfileDB(
            clerk_user_id="user_unverified",
            company_name="New Lifts LLP",
            verification_status=VerificationStatus.PENDING.value,
        )
    )
    await db_session.commit()
    return bearer("user_unverified", email="owner@newlifts.in", name="Karan Mehta")


@pytest.fixture
def verified_identity() -> IdentitySnapshot:
    return IdentitySnapshot(
        is_signed_in=True,
        clerk_user_id="user_verified",
        email="buyer@liftsystems.in",
        full_name="Meera Shah",
        business_profile_exists=True,
        verification_status=VerificationStatus.VERIFIED,
    )


@pytest.fixture
def individual_identity() -> IdentitySnapshot:
    return IdentitySnapshot(
        is_signed_in=True,
        clerk_user_id="user_individual",
        email="ravi@example.com",
        full_name="Ravi Kumar",
    )


# --- Checkout data ---


@pytest_asyncio.fixture
async def pickup_location(db_session: AsyncSession) -> PickupLocationDB:
    location = PickupLocationDB(
        name="Cedar Warehouse Ahmedabad",
        address="Plot 12, GIDC Naroda",
        city="Ahmedabad",
        state="Gujarat",
        pincode="382330",
        created_at=utcnow(),
    )
    db_session.add(location)
    await db_session.commit()
    await db_session.refresh(location)
    return location


@pytest.fixture
def doorstep_shipping() -> Dict:
    return {
        "method": "doorstep",
        "address": {
            "name": "Meera Shah",
            "phone": "9876543210",
            "address_line1": "14 Industrial Estate",
            "city": "Pune",
            "state": "Maharashtra",
            "pincode": "411001",
        },
    }


@pytest.fixture
def door_panel_line() -> Dict:
    return {"product_name": "Door panel", "product_sku": "DP-100", "quantity": 2, "unit_price": str(Decimal("1000"))}
