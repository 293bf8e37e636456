"""Calendar integration schemas."""

from pydantic import BaseModel, Field


class AuthUrlResponse(BaseModel):
    """Consent URL for connecting a Google account."""

    url: str
    state: str


class TokenExchangeRequest(BaseModel):
    """Authorization code returned by the consent screen."""

    code: str = Field(..., min_length=1)
    redirect_uri: str | None = None
    state: str = Field(..., min_length=1)


class IntegrationStatusResponse(BaseModel):
    """Whether the calling user has a usable calendar credential."""

    connected: bool
    google_email: str | None = None


class CalendarCreateRequest(BaseModel):
    """New secondary calendar, typically one per specialist."""

    summary: str = Field(..., min_length=1, max_length=200)
