"""
trust.py
--------
Purpose:
    Trust badge endpoints. Classification is pure; only the profile lookup
    touches the database.
"""

from fastapi import APIRouter, HTTPException, Query, status

from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.api.trust_response import ProfileTrustResponse, TrustTiersResponse
from app.models.domain.trust_domain import BadgeSize, TrustBadge
from app.repositories.profile_repository import ProfileNotFoundError, ProfileRepository
from app.services.trust_service import all_tiers, build_badge

router = APIRouter(tags=["trust"])
logger = get_logger(__name__)


@router.get("/trust/badge", response_model=TrustBadge)
async def trust_badge(score: int = Query(...), size: BadgeSize = BadgeSize.MEDIUM):
    return build_badge(score, size)


@router.get("/trust/tiers", response_model=TrustTiersResponse)
async def trust_tiers():
    return TrustTiersResponse(tiers=all_tiers())


@router.get("/profiles/{user_id}/trust", response_model=ProfileTrustResponse)
async def profile_trust(user_id: str, size: BadgeSize = BadgeSize.MEDIUM):
    try:
        score = await ProfileRepository.get_trust_score(user_id)
    except ProfileNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found") from e
    except DatabaseError as e:
        if e.is_invalid_input:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found") from e
        logger.error("Failed to load trust score", user_id=user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load trust score",
        ) from e

    return ProfileTrustResponse(user_id=user_id, badge=build_badge(score, size))
