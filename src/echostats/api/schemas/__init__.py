"""API request/response schemas."""

from echostats.api.schemas.auth import AuthCallbackRequest, RefreshTokenRequest
from echostats.api.schemas.stats import StatsSummaryResponse

__all__ = ["AuthCallbackRequest", "RefreshTokenRequest", "StatsSummaryResponse"]
