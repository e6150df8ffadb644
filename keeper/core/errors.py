"""
Error types raised by the harvest keeper.

Shortfalls while liquidating are not errors: they are reported as loss.
Everything here aborts the current entry point.
"""


class StrategyError(Exception):
    """Base class for keeper errors."""
    pass


class ExternalCallError(StrategyError):
    """A venue, exchange, oracle or transaction call failed or reverted."""
    pass


class PriceUnavailableError(ExternalCallError):
    """No usable price could be read for an asset."""
    pass


class StalePriceError(PriceUnavailableError):
    """The price feed answered, but its last update is too old."""

    def __init__(self, feed: str, age_seconds: int, max_age_seconds: int):
        self.feed = feed
        self.age_seconds = age_seconds
        self.max_age_seconds = max_age_seconds
        super().__init__(
            f"Price from {feed} is {age_seconds}s old (max {max_age_seconds}s)"
        )


class SlippageError(ExternalCallError):
    """A swap returned less than its minimum acceptable output."""

    def __init__(self, route: str, amount_out: int, min_out: int):
        self.route = route
        self.amount_out = amount_out
        self.min_out = min_out
        super().__init__(
            f"Route {route} returned {amount_out}, below floor {min_out}"
        )


class InsufficientBalanceError(StrategyError):
    """An operation asked for more than the wallet holds."""
    pass


class UnauthorizedError(StrategyError):
    """An operator-only action was attempted by an unknown caller."""
    pass
