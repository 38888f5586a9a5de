"""Typed domain exceptions for the run lifecycle.

Severity follows the error taxonomy the HTTP layer maps to responses:
- CatalogExhaustedError is fatal to starting a run.
- RequestRejectedError subclasses refuse one request without corrupting
  state; the run itself continues.
Store outages are not game errors: they surface as
shared.kv.StoreUnavailableError and are absorbed as degraded mode.
"""


class GameError(Exception):
    """Base exception for game-domain failures."""


class CatalogExhaustedError(GameError):
    """Fewer than two comparable items are available."""

    def __init__(self, available: int) -> None:
        self.available = available
        super().__init__(f"need at least 2 items to build a pair, catalog has {available}")


class RequestRejectedError(GameError):
    """The request is refused; no state was changed.

    Attributes:
        code: Stable machine-readable reason, returned to clients.

    """

    code = "rejected"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnauthorizedError(RequestRejectedError):
    """The caller does not own the run."""

    code = "unauthorized"


class TokenMismatchError(RequestRejectedError):
    """The submitted item pair is not the pair the server last issued."""

    code = "token_mismatch"


class RateLimitedError(RequestRejectedError):
    """Guesses are arriving faster than the minimum inter-guess interval."""

    code = "rate_limited"


class RunOverError(RequestRejectedError):
    """The run has already been lost and is waiting on a reprieve or a score submission."""

    code = "run_over"


class ReprieveNotEligibleError(RequestRejectedError):
    """A reprieve was requested that the policy does not allow."""

    code = "reprieve_not_eligible"


class InvalidItemError(RequestRejectedError):
    """An item id does not exist in the current catalog snapshot."""

    code = "invalid_item"
