"""Exception hierarchy for clinic discovery.

Every error carries a stable ``code`` and a localized ``user_message``;
raw external-source text is kept on the exception for logs only.
"""

from __future__ import annotations

from clinicfinder.messages import Language, message
from clinicfinder.models import LocationErrorReason


class ClinicFinderError(Exception):
    """Base exception for all clinic discovery errors."""

    code = "clinicfinder_error"
    message_key = "error.internal"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"{self.code}: {detail}" if detail else self.code)

    def user_message(self, language: str | Language | None = None) -> str:
        return message(self.message_key, language)


class LocationUnavailable(ClinicFinderError):
    """The geolocation source could not produce a fix."""

    code = "location_unavailable"

    def __init__(self, reason: LocationErrorReason, detail: str = "") -> None:
        self.reason = reason
        super().__init__(detail or reason.value)

    @property
    def retryable(self) -> bool:
        return self.reason.retryable

    @property
    def message_key(self) -> str:  # type: ignore[override]
        return f"location.{self.reason.value}"


class LocationRequired(ClinicFinderError):
    """Raised by the engine when a search cannot resolve the caller's location."""

    code = "location_required"

    def __init__(
        self,
        reason: LocationErrorReason | None = None,
        detail: str = "",
    ) -> None:
        self.reason = reason
        super().__init__(detail or (reason.value if reason else ""))

    @property
    def message_key(self) -> str:  # type: ignore[override]
        if self.reason in (
            LocationErrorReason.PERMISSION_DENIED,
            LocationErrorReason.UNSUPPORTED,
        ):
            return f"location.{self.reason.value}"
        return "location.required"


class SearchFailed(ClinicFinderError):
    """The external facility source failed (network, status or payload)."""

    code = "search_failed"
    message_key = "search.failed"

    def __init__(self, cause: BaseException | str) -> None:
        self.cause = cause
        super().__init__(str(cause))
