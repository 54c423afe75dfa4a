"""Authentication schemas for JWT tokens and user context."""

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """Authenticated agent context extracted from a JWT.

    Every dashboard request is scoped to the company carried in the token.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Unique identifier for the user (from JWT sub claim)")
    company_id: str = Field(description="Tenant the user belongs to (from company_id claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="User's role (e.g., 'vendor', 'manager')")


class TokenPayload(BaseModel):
    """JWT token payload structure."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's id")
    company_id: str = Field(description="Tenant id")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext."""
        return UserContext(
            user_id=self.sub,
            company_id=self.company_id,
            email=self.email,
            role=self.role,
        )
