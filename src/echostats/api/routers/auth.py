"""OAuth endpoints: code exchange and token refresh.

Hey future me - the client holds the tokens, not us. These endpoints only proxy the
two grants to Spotify's token endpoint so the client secret never leaves the server.
Success returns Spotify's token JSON as-is (plus the retained refresh_token when the
refresh response didn't include one).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from echostats.api.dependencies import get_token_manager
from echostats.api.schemas.auth import AuthCallbackRequest, RefreshTokenRequest
from echostats.application.services.token_manager import TokenManager
from echostats.domain.exceptions import ConfigurationError, UpstreamAuthError

logger = logging.getLogger(__name__)

router = APIRouter()


# Missing code/redirectUri -> ValidationError (400) and missing client credentials ->
# ConfigurationError (500 "Server configuration error: ...") are left to the global
# handlers. Only Spotify's rejection is mapped here: 500 with its message.
@router.post("/callback")
async def auth_callback(
    body: AuthCallbackRequest | None = None,
    token_manager: TokenManager = Depends(get_token_manager),
) -> JSONResponse:
    """Exchange an authorization code for tokens.

    Returns:
        Spotify token response (access_token, refresh_token, expires_in, ...)
    """
    request = body or AuthCallbackRequest()
    try:
        credentials = await token_manager.exchange_code(
            request.code or "", request.redirect_uri or ""
        )
    except UpstreamAuthError as e:
        raise HTTPException(status_code=500, detail=e.message) from e

    return JSONResponse(content=credentials.to_token_response())


@router.post("/refresh")
async def refresh_token(
    body: RefreshTokenRequest | None = None,
    token_manager: TokenManager = Depends(get_token_manager),
) -> JSONResponse:
    """Refresh an access token.

    Returns:
        Spotify refresh response; refresh_token is filled in with the one
        sent if Spotify didn't rotate it
    """
    request = body or RefreshTokenRequest()
    try:
        credentials = await token_manager.refresh(request.refresh_token or "")
    except (ConfigurationError, UpstreamAuthError) as e:
        logger.error("Token refresh failed: %s", e.message)
        raise HTTPException(status_code=500, detail="Failed to refresh token") from e

    return JSONResponse(content=credentials.to_token_response())
