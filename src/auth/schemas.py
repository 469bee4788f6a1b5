"""Pydantic schemas for authentication."""

from pydantic import BaseModel, ConfigDict, Field

from src.auth.permissions import Role


class Principal(BaseModel):
    """Authenticated caller, built from verified access token claims."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="User ID (token `sub` claim)")
    email: str
    username: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
