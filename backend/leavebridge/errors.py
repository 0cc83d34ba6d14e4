"""Exception taxonomy for the notification bridge."""


class LeaveBridgeError(Exception):
    """Base class for all bridge errors."""


class ConfigurationError(LeaveBridgeError):
    """Required configuration is missing. Fatal at startup."""


class RecordStoreError(LeaveBridgeError):
    """A call to the record store failed."""


class AuthenticationError(RecordStoreError):
    """The record store rejected our credentials."""


class TransientStoreError(RecordStoreError):
    """Network failure, timeout, or query error. Retried on the next tick."""


class RecipientResolutionGap(LeaveBridgeError):
    """No recipient could be derived for a change record."""


class DeliveryError(LeaveBridgeError):
    """A push delivery attempt failed."""

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code


class PermanentInvalidToken(DeliveryError):
    """The gateway reports the token as gone. It must be discarded."""


class TransientDeliveryError(DeliveryError):
    """Any other delivery failure. Logged only."""
