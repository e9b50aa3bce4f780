"""
Error taxonomy of the moderation engine.

``PolicyDenial`` and ``UsageError`` are shown to the invoking user as a
localized explanation. Everything else is answered with a generic failure
message while the details go to the log.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ModerationError(Exception):
    """Base class for all moderation engine errors."""


class UserFacingError(ModerationError):
    """An error whose translation key and parameters may be shown to the user."""

    def __init__(self, translation_key: str, **params: Any) -> None:
        super().__init__(translation_key)
        self.translation_key = translation_key
        self.params: Dict[str, Any] = params


class PolicyDenial(UserFacingError):
    """The action was rejected before any side effect took place.

    ``reason`` is a ``DenialReason`` from ``casewarden.moderation.policy``.
    """

    def __init__(self, reason: Any, **params: Any) -> None:
        super().__init__(reason.translation_key, **params)
        self.reason = reason


class UsageError(UserFacingError):
    """Malformed command input, rejected before querying."""


class ExternalActionFailure(ModerationError):
    """The platform rejected a mutation. No case was written."""

    def __init__(self, action: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"platform rejected {action}: {cause!r}")
        self.action = action
        self.cause = cause


class PersistenceFailure(ModerationError):
    """A case write failed after the platform mutation already happened."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class DeliveryFailure(ModerationError):
    """A log notification could not be delivered."""


class SweepItemFailure(ModerationError):
    """One expired case could not be reversed during a sweep."""

    def __init__(self, case_row_id: int, cause: BaseException) -> None:
        super().__init__(f"failed to reverse case row {case_row_id}: {cause!r}")
        self.case_row_id = case_row_id
        self.cause = cause
