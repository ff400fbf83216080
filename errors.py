"""
Exception types shared by the validators and the snapshot loader.
"""

from typing import Iterable


class MalformedAddress(ValueError):
    """Raised when an onion address fails one or more v3 format checks."""

    def __init__(self, address: str, failed_checks: Iterable[str]):
        self.address = address
        self.failed_checks = tuple(failed_checks)
        super().__init__(f"Malformed onion address {address!r}: failed {', '.join(self.failed_checks)}")


class NonCompliantHeaderConfig(ValueError):
    """Raised when an Onion-Location configuration misses one or more clauses."""

    def __init__(self, failed_clauses: Iterable[str]):
        self.failed_clauses = tuple(sorted(failed_clauses))
        super().__init__(f"Onion-Location configuration is non-compliant: {', '.join(self.failed_clauses)}")


class UnrecognizedStatus(ValueError):
    """Raised by strict classification for a status outside the taxonomy."""


class DuplicateServiceName(ValueError):
    """Raised when two records in one snapshot share a name."""
