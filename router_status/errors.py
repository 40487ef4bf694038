# Exception taxonomy for router-status.
#
# InvalidAddress and ProbeError never reach the host: the scheduler turns both
# into NOT_CONNECTED. ConfigError is raised at load time, before polling starts.


class RouterStatusError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(RouterStatusError):
    """Configuration file or router entry is malformed."""


class InvalidAddress(RouterStatusError, ValueError):
    """A homepage address could not be turned into an origin."""

    def __init__(self, address: str, reason: str) -> None:
        super().__init__(f"Invalid address {address!r}: {reason}")
        self.address = address
        self.reason = reason


class ProbeError(RouterStatusError):
    """Transport-level failure while probing an origin (DNS, connect, TLS, timeout)."""

    def __init__(self, href: str, reason: str) -> None:
        super().__init__(f"Error fetching status from {href}: {reason}")
        self.href = href
        self.reason = reason
