"""Identity and sign-out endpoints.

Sign-in itself happens against the platform's identity provider; the first
request carrying its access token opens the user's session here.
"""

from fastapi import APIRouter

from srm_collab.schemas import IdentityResponse, SignOutResponse
from srm_collab.services.profiles import get_profile, is_profile_complete

from ..dependencies import CurrentSessionDep, RegistryDep

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=IdentityResponse)
async def who_am_i(session: CurrentSessionDep) -> IdentityResponse:
    """Return the signed-in user and whether profile setup is finished."""
    profile = await get_profile(session)
    return IdentityResponse(
        user_id=session.require_identity(),
        email=session.email,
        profile_complete=is_profile_complete(profile),
        profile=profile,
    )


@router.post("/sign-out", response_model=SignOutResponse)
async def sign_out(session: CurrentSessionDep, registry: RegistryDep) -> SignOutResponse:
    """End the caller's session, discarding its likes/votes guard and cached views."""
    return SignOutResponse(signed_out=registry.close(session.user_id))
