# Specific exception types for different error conditions
class BackgammonError(Exception):
    """Base exception for client-side errors."""

    pass


class RpcError(BackgammonError):
    """Raised when a ledger call fails (unreachable node, rejection, timeout)."""

    UNREACHABLE = "unreachable"
    REJECTED = "rejected"
    TIMEOUT = "timeout"

    def __init__(self, message: str, kind: str = REJECTED):
        super().__init__(message)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        return self.kind in (self.UNREACHABLE, self.TIMEOUT)


class ConfigError(BackgammonError):
    """Raised when endpoint configuration or a supplied address is malformed."""

    pass


class StateError(BackgammonError):
    """Raised when a transition is attempted from a phase that does not permit it."""

    pass
