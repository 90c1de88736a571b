from pydantic import BaseModel, ConfigDict


class AuthContext(BaseModel):
    """Authenticated caller, handed explicitly to each handler that needs it."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str | None = None
    role: str = "authenticated"
    access_token: str | None = None
    is_service: bool = False
