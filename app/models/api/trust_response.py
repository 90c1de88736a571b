# app/models/api/trust_response.py
from pydantic import BaseModel

from app.models.domain.trust_domain import TrustBadge, TrustTier


class TrustTiersResponse(BaseModel):
    """Response for GET /trust/tiers (ascending)"""

    tiers: list[TrustTier]


class ProfileTrustResponse(BaseModel):
    """Response for GET /profiles/{user_id}/trust"""

    user_id: str
    badge: TrustBadge
