"""Typed errors for the Odds API client and snapshot pipelines."""

from __future__ import annotations


class OddsApiError(Exception):
    """Base class for every failure that aborts a snapshot run."""


class MissingCredentialError(OddsApiError):
    def __init__(self) -> None:
        super().__init__("Missing Odds API key. Set THE_ODDS_API_KEY or pass it explicitly.")


class UpstreamHttpError(OddsApiError):
    """Raised when the Odds API answers with a non-success status.

    Attributes:
        status_code: HTTP status returned by the provider.
        body: Raw response text, kept for diagnostics.
        path: Request path without the query string.
    """

    def __init__(self, status_code: int, body: str, path: str) -> None:
        self.status_code = status_code
        self.body = body
        self.path = path
        super().__init__(f"Odds API GET {path} failed ({status_code}): {body}")


class UpstreamTransportError(OddsApiError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Odds API GET {path} did not complete: {reason}")


class MalformedPayloadError(OddsApiError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Odds API GET {path} returned an unexpected payload: {reason}")


class NoActiveSportsError(OddsApiError):
    def __init__(self, message: str = "No active sports available to snapshot.") -> None:
        super().__init__(message)
