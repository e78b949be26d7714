"""Exceptions raised by clawstr library code.

Library modules raise these; only the command layer turns them into a
message on stderr and a non-zero exit code.
"""

from __future__ import annotations


class ClawstrError(Exception):
    """Base class for all clawstr errors."""


class InvalidTimestampError(ClawstrError, ValueError):
    def __init__(self, value: str, *, allow_latest: bool = True):
        self.value = value
        expected = 'a unix timestamp or "latest"' if allow_latest else "a unix timestamp"
        super().__init__(f'Invalid timestamp value "{value}". Must be {expected}.')


class MissingLatestTimestampError(ClawstrError):
    def __init__(self) -> None:
        super().__init__(
            'No "latest" timestamp stored. Use `clawstr timestamp --set <value>` to set one.'
        )


class StoreError(ClawstrError):
    """The key/value store could not be opened, read or written."""


class RelayTransportError(ClawstrError):
    def __init__(self, message: str, relay_errors: dict[str, str] | None = None):
        super().__init__(message)
        self.relay_errors = dict(relay_errors or {})


class IdentityError(ClawstrError):
    pass


class EventReferenceError(ClawstrError, ValueError):
    pass


class InvalidRecipientError(ClawstrError, ValueError):
    pass


class WalletError(ClawstrError):
    """The Cashu wallet is missing, misconfigured, or the mint refused a request."""


class ZapError(ClawstrError):
    """A zap could not be requested from the recipient's lightning service."""
