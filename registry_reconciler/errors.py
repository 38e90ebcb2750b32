"""
Exceptions raised by the registry reconciler.

Cycle-time errors are caught at the per-server attempt or per-instance
boundary; only ConfigurationError is allowed to reach the process.
"""

from typing import Optional


class ReconcilerError(Exception):
    """Base class for all reconciler errors"""


class ConfigurationError(ReconcilerError):
    """Settings could not be loaded or validated at startup"""


class TransportError(ReconcilerError):
    """The HTTP exchange did not complete (refused, timed out, bad URL)"""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        detail = f"{type(cause).__name__}: {cause}" if cause else "transport failure"
        super().__init__(f"Request to {url} failed: {detail}")


class HttpStatusError(ReconcilerError):
    """The exchange completed but returned an unexpected status code"""

    def __init__(self, url: str, expected: int, actual: int):
        self.url = url
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Unexpected status from {url}: expected {expected}, got {actual}"
        )


class NoAvailableServer(ReconcilerError):
    """Every registry replica failed its own health probe during a query"""

    def __init__(self, instance_key: str):
        self.instance_key = instance_key
        super().__init__(f"No available Eureka servers found for instance {instance_key}")


class MalformedInstanceTarget(ReconcilerError):
    """A configured instance URL could not be parsed into host and port"""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Malformed instance target '{target}': {reason}")
