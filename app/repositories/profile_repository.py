"""Read-only access to profile trust scores."""

from app.db.helpers import fetch_one, with_db_retry


class ProfileNotFoundError(LookupError):
    pass


class ProfileRepository:
    @classmethod
    @with_db_retry(max_retries=2, base_delay=0.1)
    async def get_trust_score(cls, user_id: str) -> int:
        """
        Return the stored trust score for a profile.

        A NULL score counts as 0. Raises ProfileNotFoundError for unknown ids.
        """
        row = await fetch_one("SELECT trust_score FROM profiles WHERE id = %s", (user_id,))
        if row is None:
            raise ProfileNotFoundError(user_id)
        return int(row["trust_score"] or 0)
