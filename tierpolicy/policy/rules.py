"""
Traffic rule records at each stage of the pipeline.

    RawTrafficRule       - shorthand as written in the policy document
    ExpandedTrafficRule  - one concrete (source, destination, ports, protocol)
    DirectionalRule      - an expanded rule seen from its owning tier

All three are frozen; each stage builds new values instead of patching the
previous stage's output.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .tiers import NetworkTier, TierType


class Direction(str, Enum):
    INGRESS = 'ingress'
    EGRESS = 'egress'


@dataclass(frozen=True)
class PortRange:
    """A `{from, to}` port entry."""
    from_port: int
    to_port: int

    def to_dict(self) -> Dict[str, int]:
        return {'from': self.from_port, 'to': self.to_port}


PortEntry = Union[int, PortRange]
TierNames = Union[str, Tuple[str, ...]]


def _freeze_names(value: Any) -> TierNames:
    if isinstance(value, str):
        return value
    return tuple(value)


def _freeze_port(value: Any) -> PortEntry:
    if isinstance(value, PortRange):
        return value
    if isinstance(value, Mapping):
        return PortRange(value['from'], value['to'])
    return value


@dataclass(frozen=True)
class RawTrafficRule:
    """
    A traffic rule in policy shorthand.

    Attributes:
        source / destination: Tier name, aggregate keyword ('all', ...) or a
            tuple of names
        port: None, a port entry, or a tuple of port entries
        protocol: None, a protocol number, or a protocol name
        traffic_type: None, a catalog name, or a tuple of names
        description: User description copied onto every expanded rule
    """
    source: TierNames
    destination: TierNames
    port: Union[None, PortEntry, Tuple[PortEntry, ...]] = None
    protocol: Union[None, int, str] = None
    traffic_type: Union[None, str, Tuple[str, ...]] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RawTrafficRule':
        """Build a rule from a validated policy document entry."""
        port = data.get('port')
        if isinstance(port, (list, tuple)):
            port = tuple(_freeze_port(entry) for entry in port)
        elif port is not None:
            port = _freeze_port(port)

        traffic_type = data.get('traffic_type')
        if isinstance(traffic_type, (list, tuple)):
            traffic_type = tuple(traffic_type)

        return cls(
            source=_freeze_names(data['source']),
            destination=_freeze_names(data['destination']),
            port=port,
            protocol=data.get('protocol'),
            traffic_type=traffic_type,
            description=data.get('description'),
        )

    def to_dict(self) -> Dict[str, Any]:
        def thaw(value):
            if isinstance(value, tuple):
                return [thaw(v) for v in value]
            if isinstance(value, PortRange):
                return value.to_dict()
            return value

        data = {
            'source': thaw(self.source),
            'destination': thaw(self.destination),
        }
        for key in ('port', 'protocol', 'traffic_type', 'description'):
            value = getattr(self, key)
            if value is not None:
                data[key] = thaw(value)
        return data


@dataclass(frozen=True)
class ExpandedTrafficRule:
    """One concrete allowed flow between two resolved tiers."""
    source_tier: NetworkTier
    destination_tier: NetworkTier
    from_port: int
    to_port: int
    protocol: Union[int, str]
    protocol_name: Optional[str]
    traffic_type_name: str
    description: Optional[str] = None

    def identity(self) -> Tuple[Any, ...]:
        """Fields that make two expanded rules the same rule."""
        return (
            self.source_tier,
            self.destination_tier,
            self.from_port,
            self.to_port,
            self.protocol,
            self.traffic_type_name,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source_network_tier': self.source_tier.to_dict(),
            'destination_network_tier': self.destination_tier.to_dict(),
            'from_port': self.from_port,
            'to_port': self.to_port,
            'protocol': self.protocol,
            'protocol_name': self.protocol_name,
            'traffic_type_name': self.traffic_type_name,
            'traffic_rule_description': self.description,
        }


@dataclass(frozen=True)
class DirectionalRule:
    """
    An expanded rule placed in its owning tier's rule group.

    Attributes:
        rule: The expanded rule
        direction: INGRESS when the owning tier is the destination, EGRESS
            when it is the source
        network_tier: Owning tier
        other_network_tier: The opposite side; re-tagged Ipv6SubnetGroup for
            IPv6 duplicates in the network ACL variant
        rule_name: Slug made of [a-z0-9_]
        description: User description or a synthesized one
    """
    rule: ExpandedTrafficRule
    direction: Direction
    network_tier: NetworkTier
    other_network_tier: NetworkTier
    rule_name: str
    description: str

    @property
    def traffic_type_name(self) -> str:
        return self.rule.traffic_type_name

    @property
    def is_ipv6(self) -> bool:
        """True when the opposite side is addressed by IPv6 CIDRs."""
        return self.other_network_tier.tier_type in (TierType.IPV6_SUBNET_GROUP, TierType.IPV6_CIDR_BLOCK)

    def to_dict(self) -> Dict[str, Any]:
        """Flat mapping handed to the rule templates."""
        data = self.rule.to_dict()
        data.update({
            'traffic_rule_name': self.rule_name,
            'traffic_rule_description': self.description,
            'traffic_rule_type': self.direction.value,
            'network_tier': self.network_tier.to_dict(),
            'other_network_tier': self.other_network_tier.to_dict(),
            'ipv6': self.is_ipv6,
        })
        return data
