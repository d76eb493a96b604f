from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from jose import jwt

from cedar.core.config import settings
from cedar.core.utils import utcnow
from cedar.identity.application.services import IdentityService
from cedar.identity.domain.entities import BusinessProfile, IdentitySnapshot, VerificationStatus
from cedar.identity.infrastructure.clerk import ClerkClaims, create_session_token, decode_session_token
from cedar.identity.infrastructure.persistence import SQLAlchemyBusinessProfileRepository
from cedar.quotes.domain.entities import QuoteUserType, user_type_for


def profile(status: VerificationStatus) -> BusinessProfile:
    now = utcnow()
    return BusinessProfile(
        id=1,
        clerk_user_id="user_42",
        company_name="Lift Systems Pvt Ltd",
        verification_status=status,
        created_at=now,
        updated_at=now,
    )


# --- Clerk tokens ---


def test_token_round_trip():
    token = create_session_token("user_42", email="buyer@liftsystems.in", name="Meera Shah", role="admin")

    claims = decode_session_token(token)

    assert claims == ClerkClaims(sub="user_42", email="buyer@liftsystems.in", name="Meera Shah", role="admin")


def test_expired_token_is_rejected():
    token = create_session_token("user_42", expires_delta=timedelta(minutes=-1))
    assert decode_session_token(token) is None


def test_token_signed_with_another_secret_is_rejected():
    token = jwt.encode({"sub": "user_42"}, "some-other-secret", algorithm="HS256")
    assert decode_session_token(token) is None


def test_token_without_subject_is_rejected():
    token = jwt.encode({"email": "x@example.com"}, settings.CLERK_JWT_SECRET, algorithm="HS256")
    assert decode_session_token(token) is None


@pytest.mark.parametrize(
    "extra",
    [{"role": "admin"}, {"metadata": {"role": "admin"}}, {"public_metadata": {"role": "admin"}}],
)
def test_role_read_from_any_claim(extra):
    token = jwt.encode({"sub": "user_42", **extra}, settings.CLERK_JWT_SECRET, algorithm="HS256")
    assert decode_session_token(token).role == "admin"


# --- Snapshots ---


@pytest.mark.asyncio
async def test_snapshot_without_claims_is_anonymous():
    service = IdentityService(profile_repo=AsyncMock())
    assert await service.snapshot_for(None) == IdentitySnapshot.anonymous()


@pytest.mark.asyncio
async def test_snapshot_with_verified_profile():
    repo = AsyncMock()
    repo.get_for_user.return_value = profile(VerificationStatus.VERIFIED)

    snapshot = await IdentityService(profile_repo=repo).snapshot_for(ClerkClaims(sub="user_42", role="admin"))

    assert snapshot.is_signed_in and snapshot.is_admin
    assert snapshot.business_profile_exists is True
    assert snapshot.verification_status == VerificationStatus.VERIFIED
    assert snapshot.is_verified_business is True


@pytest.mark.asyncio
async def test_snapshot_without_profile():
    repo = AsyncMock()
    repo.get_for_user.return_value = None

    snapshot = await IdentityService(profile_repo=repo).snapshot_for(ClerkClaims(sub="user_42"))

    assert snapshot.business_profile_exists is False
    assert snapshot.verification_status is None
    assert snapshot.is_admin is False


@pytest.mark.asyncio
async def test_profile_repository_upserts(db_session):
    repo = SQLAlchemyBusinessProfileRepository(db_session)

    await repo.save("user_42", "Lift Systems", VerificationStatus.PENDING)
    saved = await repo.save("user_42", "Lift Systems Pvt Ltd", VerificationStatus.VERIFIED, gst_number="24AAACL1234F1Z5")

    loaded = await repo.get_for_user("user_42")
    assert loaded.id == saved.id
    assert loaded.company_name == "Lift Systems Pvt Ltd"
    assert loaded.verification_status == VerificationStatus.VERIFIED
    assert await repo.get_for_user("user_unknown") is None


# --- Quote requester classification ---


@pytest.mark.parametrize(
    "snapshot,expected",
    [
        (IdentitySnapshot.anonymous(), QuoteUserType.GUEST),
        (IdentitySnapshot(is_signed_in=True, clerk_user_id="u"), QuoteUserType.INDIVIDUAL),
        (
            IdentitySnapshot(
                is_signed_in=True,
                clerk_user_id="u",
                business_profile_exists=True,
                verification_status=VerificationStatus.VERIFIED,
            ),
            QuoteUserType.VERIFIED,
        ),
        (
            IdentitySnapshot(
                is_signed_in=True,
                clerk_user_id="u",
                business_profile_exists=True,
                verification_status=VerificationStatus.PENDING,
            ),
            QuoteUserType.BUSINESS,
        ),
    ],
)
def test_user_type_for(snapshot, expected):
    assert user_type_for(snapshot) == expected
