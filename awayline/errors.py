"""Exception hierarchy for awayline."""
from __future__ import annotations


class AwaylineError(Exception):
    """Base class for all awayline errors."""


class ConfigError(AwaylineError):
    """Missing or invalid configuration. Fatal at startup."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Configuration validation failed:\n  - " + "\n  - ".join(errors))


class TransportError(AwaylineError):
    """A chat transport call failed."""

    def __init__(self, method: str, detail: str) -> None:
        self.method = method
        self.detail = detail
        super().__init__(f"Telegram API [{method}]: {detail}")


class ApprovalError(AwaylineError):
    """An approval request could not be polled."""


class ApprovalNotFoundError(ApprovalError):
    """The approval id is unknown, already resolved, or evicted."""

    def __init__(self, approval_id: str) -> None:
        self.approval_id = approval_id
        super().__init__(f"No pending approval found: {approval_id}")


class ApprovalEvictedError(ApprovalNotFoundError):
    """The approval was evicted to make room while it was being polled."""
