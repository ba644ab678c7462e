"""Authentication schemas."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class UserRegister(BaseModel):
    """User registration request."""

    name: str | None = Field(None, max_length=255)
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=128)


class UserLogin(BaseModel):
    """Credentials sign-in request."""

    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class MagicLinkRequest(BaseModel):
    """Magic-link sign-in request."""

    email: EmailStr = Field(..., max_length=255)


class ActionResult(BaseModel):
    """Outcome of a form action: exactly one of error or success is set."""

    error: str | None = None
    success: str | None = None
    description: str | None = None

    @model_validator(mode="after")
    def check_outcome(self) -> "ActionResult":
        """Ensure the result is either an error or a success."""
        if (self.error is None) == (self.success is None):
            raise ValueError("exactly one of error or success must be set")
        return self

    @property
    def ok(self) -> bool:
        """Check if the action succeeded."""
        return self.success is not None


class UserResponse(BaseModel):
    """User information response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str | None
    image: str | None = None
    has_password: bool = False


class AuthResponse(BaseModel):
    """Authentication response with token, user info and post-login target."""

    access_token: str
    token_type: str = "bearer"  # noqa: S105
    user: UserResponse
    redirect_to: str
