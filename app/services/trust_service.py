"""
Trust badge classification.

Maps a profile's trust score onto a display tier. Pure and deterministic;
the score itself is accumulated elsewhere (e.g. by returning items).
"""

from app.models.domain.trust_domain import BadgeSize, IconKind, TrustBadge, TrustTier

NEW_MEMBER = TrustTier(
    label="New Member",
    color_class="text-slate-500",
    bg_class="bg-slate-100",
    icon_kind=IconKind.SHIELD,
    rank=0,
    min_score=0,
)
VERIFIED_MEMBER = TrustTier(
    label="Verified Member",
    color_class="text-blue-600",
    bg_class="bg-blue-100",
    icon_kind=IconKind.SHIELD_CHECK,
    rank=1,
    min_score=10,
)
TRUSTED_FINDER = TrustTier(
    label="Trusted Finder",
    color_class="text-green-600",
    bg_class="bg-green-100",
    icon_kind=IconKind.SHIELD_CHECK,
    rank=2,
    min_score=50,
)
COMMUNITY_HERO = TrustTier(
    label="Community Hero",
    color_class="text-purple-600",
    bg_class="bg-purple-100",
    icon_kind=IconKind.AWARD,
    rank=3,
    min_score=100,
)

# Highest first; first match wins
TIERS: tuple[TrustTier, ...] = (COMMUNITY_HERO, TRUSTED_FINDER, VERIFIED_MEMBER)

ICON_CLASSES: dict[BadgeSize, str] = {
    BadgeSize.SMALL: "h-3 w-3",
    BadgeSize.MEDIUM: "h-5 w-5",
    BadgeSize.LARGE: "h-8 w-8",
}

TOOLTIP_HINT = "Earn points by returning items!"


def classify(score: int) -> TrustTier:
    """Return the trust tier for a score. Anything below 10, negatives included, is a New Member."""
    for tier in TIERS:
        if score >= tier.min_score:
            return tier
    return NEW_MEMBER


def all_tiers() -> list[TrustTier]:
    """Tiers in ascending order."""
    return sorted((*TIERS, NEW_MEMBER), key=lambda tier: tier.rank)


def build_badge(score: int, size: BadgeSize = BadgeSize.MEDIUM) -> TrustBadge:
    """
    Build the badge payload for a score.

    Size only drives the icon dimensions; the tier comes from the score alone.
    """
    return TrustBadge(
        score=score,
        size=size,
        tier=classify(score),
        icon_class=ICON_CLASSES[size],
        tooltip=[f"Trust Score: {score}", TOOLTIP_HINT],
    )
