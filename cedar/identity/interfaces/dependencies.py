import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from cedar.core.database import DbSessionDep

from ..application.services import IdentityService
from ..domain.entities import IdentitySnapshot
from ..domain.exceptions import AdminRequiredException, SignInRequiredException, TokenInvalidException
from ..domain.repositories import AbstractBusinessProfileRepository
from ..infrastructure.clerk import decode_session_token
from ..infrastructure.persistence import SQLAlchemyBusinessProfileRepository

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_business_profile_repository(session: DbSessionDep) -> AbstractBusinessProfileRepository:
    return SQLAlchemyBusinessProfileRepository(session)


BusinessProfileRepositoryDep = Annotated[AbstractBusinessProfileRepository, Depends(get_business_profile_repository)]


def get_identity_service(profile_repo: BusinessProfileRepositoryDep) -> IdentityService:
    return IdentityService(profile_repo=profile_repo)


async def get_current_identity(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    identity_service: Annotated[IdentityService, Depends(get_identity_service)],
) -> IdentitySnapshot:
    """Anonymous snapshot when no token is sent; 401 when a token is sent but invalid."""
    if credentials is None:
        return IdentitySnapshot.anonymous()
    claims = decode_session_token(credentials.credentials)
    if claims is None:
        raise TokenInvalidException()
    return await identity_service.snapshot_for(claims)


CurrentIdentityDep = Annotated[IdentitySnapshot, Depends(get_current_identity)]


async def require_signed_in(identity: CurrentIdentityDep) -> IdentitySnapshot:
    if not identity.is_signed_in:
        raise SignInRequiredException()
    return identity


async def require_admin(identity: CurrentIdentityDep) -> IdentitySnapshot:
    if not identity.is_signed_in:
        raise SignInRequiredException()
    if not identity.is_admin:
        logger.warning(f"Non-admin {identity.clerk_user_id} tried to reach an admin route.")
        raise AdminRequiredException()
    return identity


SignedInIdentityDep = Annotated[IdentitySnapshot, Depends(require_signed_in)]
AdminIdentityDep = Annotated[IdentitySnapshot, Depends(require_admin)]
