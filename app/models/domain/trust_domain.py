from enum import Enum

from pydantic import BaseModel, ConfigDict


class IconKind(str, Enum):
    """Badge icon shown next to a trust tier label."""

    SHIELD = "shield"
    SHIELD_CHECK = "shield-check"
    AWARD = "award"


class BadgeSize(str, Enum):
    SMALL = "sm"
    MEDIUM = "md"
    LARGE = "lg"


class TrustTier(BaseModel):
    """Named band derived from a trust score. Never stored."""

    model_config = ConfigDict(frozen=True)

    label: str
    color_class: str
    bg_class: str
    icon_kind: IconKind
    rank: int
    min_score: int

    def __lt__(self, other: "TrustTier") -> bool:
        return self.rank < other.rank

    def __le__(self, other: "TrustTier") -> bool:
        return self.rank <= other.rank


class TrustBadge(BaseModel):
    """Presentation payload for a trust badge at a given size."""

    score: int
    size: BadgeSize
    tier: TrustTier
    icon_class: str
    tooltip: list[str]
