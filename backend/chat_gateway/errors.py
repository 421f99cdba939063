class GatewayError(Exception):
    """Base class for errors raised by the gateway itself."""


class ProviderConfigError(GatewayError):
    """The completion provider cannot be constructed from the current settings."""


class UpstreamError(GatewayError):
    """The completion provider failed while producing fragments."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def error_message(exc: BaseException, default: str = "An unexpected error occurred") -> str:
    return str(exc) or default
