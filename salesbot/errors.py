"""Exception types raised across the sales bot."""


class SalesBotError(Exception):
    """Base class for all sales bot errors."""


class LLMUnavailableError(SalesBotError):
    """The hosted language model is unconfigured, unreachable or failed."""


class ChannelSendError(SalesBotError):
    """A channel provider rejected or failed to deliver an outbound message."""

    def __init__(self, phone: str, message: str) -> None:
        super().__init__(message)
        self.phone = phone


class InvalidAdminInputError(SalesBotError):
    """Admin-supplied input (plan name, credentials, follow-up type) is invalid."""
