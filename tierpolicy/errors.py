"""
Exceptions raised while expanding a traffic policy.

Every error is fatal for a run: the engine never returns partially grouped
output. All exceptions derive from PolicyError so callers (the MCP tool
handlers, the loader) can catch the whole family in one place.
"""

from typing import Any, Iterable, Optional


class PolicyError(Exception):
    """Base class for all policy expansion errors."""


class UnknownTrafficType(PolicyError):
    """A traffic_type name is not present in the traffic type catalog."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown traffic type: {name}")


class UnknownProtocol(PolicyError):
    """A protocol name is not present in the protocol number table."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown protocol: {name}")


class UnknownNetworkTier(PolicyError):
    """A source or destination does not name any declared network tier."""

    def __init__(self, name: str, role: Optional[str] = None):
        self.name = name
        self.role = role
        if role:
            message = f"Unknown {role} network tier: {name}"
        else:
            message = f"Unknown network tier: {name}"
        super().__init__(message)


class DuplicateNetworkTier(PolicyError):
    """The same tier name is declared more than once across tier collections."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(set(names))
        super().__init__(f"Duplicate network tier names: {', '.join(self.names)}")


class InvalidIpv4(PolicyError, ValueError):
    """Malformed dotted-quad IPv4 address text."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid IPV4 Address: {value}")


class InvalidCidr(PolicyError, ValueError):
    """Malformed IPv4 CIDR text."""

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid CIDR: {value}")


class UnrepresentableCidrRange(PolicyError, ValueError):
    """An address range is not exactly one aligned CIDR block."""

    def __init__(self, start_ipv4: str, end_ipv4: str):
        self.start_ipv4 = start_ipv4
        self.end_ipv4 = end_ipv4
        super().__init__(
            f"Cannot convert ipv4 range to cidr: Invalid IP Range {start_ipv4} to {end_ipv4}"
        )


class ConfigValidationError(PolicyError, ValueError):
    """A policy document failed schema validation."""

    def __init__(self, message: str, errors: Optional[list] = None):
        self.errors = errors or []
        super().__init__(message)


class DuplicateRuleName(PolicyError):
    """Different rules sanitize to the same Terraform resource name."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(set(names))
        super().__init__(f"Duplicate traffic rule names: {', '.join(self.names)}")
