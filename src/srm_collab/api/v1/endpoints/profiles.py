"""Profile endpoints."""

from fastapi import APIRouter, HTTPException, status

from srm_collab.schemas import (
    Base64Upload,
    ProfileFacets,
    ProfileOptions,
    ProfileRecord,
    ProfileUpdate,
)
from srm_collab.services import aggregation
from srm_collab.services.profiles import (
    INTEREST_OPTIONS,
    SKILL_OPTIONS,
    get_profile,
    save_profile,
    upload_avatar,
)

from ..dependencies import CriteriaDep, CurrentSessionDep, bad_request

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("", response_model=list[ProfileRecord])
async def search_profiles(
    session: CurrentSessionDep,
    criteria: CriteriaDep,
) -> list[ProfileRecord]:
    """Return profiles matching every given skill, interest and course."""
    return await aggregation.filter_profiles(session.backend, criteria)


@router.get("/options", response_model=ProfileOptions)
async def profile_options() -> ProfileOptions:
    return ProfileOptions(skills=list(SKILL_OPTIONS), interests=list(INTEREST_OPTIONS))


@router.get("/facets", response_model=ProfileFacets)
async def profile_facets(session: CurrentSessionDep) -> ProfileFacets:
    """Return the skills, interests and courses present across all profiles."""
    return await aggregation.load_profile_facets(session.backend)


@router.get("/me", response_model=ProfileRecord)
async def read_own_profile(session: CurrentSessionDep) -> ProfileRecord:
    profile = await get_profile(session)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile


@router.put("/me", response_model=ProfileRecord)
async def update_own_profile(payload: ProfileUpdate, session: CurrentSessionDep) -> ProfileRecord:
    try:
        return await save_profile(session, payload)
    except ValueError as err:
        raise bad_request(err) from err


@router.post("/me/avatar", response_model=ProfileRecord)
async def replace_avatar(payload: Base64Upload, session: CurrentSessionDep) -> ProfileRecord:
    try:
        upload = payload.decode()
    except ValueError as err:
        raise bad_request(err) from err
    return await upload_avatar(session, upload)


@router.get("/{user_id}", response_model=ProfileRecord)
async def read_profile(user_id: str, session: CurrentSessionDep) -> ProfileRecord:
    profile = await get_profile(session, user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile
