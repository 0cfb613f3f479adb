"""API schemas for the OAuth endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class AuthCallbackRequest(BaseModel):
    """Body of POST /auth/callback.

    Both fields are optional at the schema level so a missing one produces
    our own 400 {"error": "Missing code or redirectUri"} instead of a generic
    validation error.
    """

    model_config = ConfigDict(populate_by_name=True)

    code: str | None = Field(default=None, description="Authorization code from Spotify")
    redirect_uri: str | None = Field(
        default=None,
        alias="redirectUri",
        description="Redirect URI used for the authorize request",
    )


class RefreshTokenRequest(BaseModel):
    """Body of POST /auth/refresh."""

    refresh_token: str | None = Field(default=None, description="Refresh token to use")
