"""
Network tiers and the tier resolver.

A network tier is anything a traffic rule can name as its source or
destination: a security group, a subnet group, a set of IPv4 or IPv6 CIDR
blocks, or a set of managed prefix lists. Each kind is its own frozen
dataclass; NetworkTier is the union of them and `tier_type` is the tag the
renderer switches on.

Classes:
    TierType: Tag values for the tier union
    SecurityGroup, SubnetGroup, Ipv6SubnetGroup, CidrBlock, Ipv6CidrBlock,
    PrefixList: Tier variants
    TierCollections: All tiers declared by one policy document
    NetworkTierResolver: Name / aggregate keyword -> tier lookup
"""

from collections import Counter
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple, Union

from ..errors import DuplicateNetworkTier, UnknownNetworkTier


class TierType(str, Enum):
    SECURITY_GROUP = 'security_group'
    SUBNET_GROUP = 'subnet_group'
    IPV6_SUBNET_GROUP = 'ipv6_subnet_group'
    CIDR_BLOCK = 'cidr_block'
    IPV6_CIDR_BLOCK = 'ipv6_cidr_block'
    PREFIX_LIST = 'prefix_list'


class _Tier:
    tier_type: ClassVar[TierType]

    def to_dict(self) -> Dict[str, Any]:
        data = {'type': self.tier_type.value}
        for key, value in asdict(self).items():
            data[key] = list(value) if isinstance(value, tuple) else value
        return data


@dataclass(frozen=True)
class SecurityGroup(_Tier):
    """
    Security group tier (security group variant owning tier).

    Attributes:
        name: Tier name, unique across the policy
        description: Free-text description
        allow_all_to_self: Explicit self-traffic setting; None defers to the
            policy-wide default
        security_group_id: Existing AWS security group ID, if any
    """
    tier_type: ClassVar[TierType] = TierType.SECURITY_GROUP

    name: str
    description: Optional[str] = None
    allow_all_to_self: Optional[bool] = None
    security_group_id: Optional[str] = None


@dataclass(frozen=True)
class SubnetGroup(_Tier):
    """
    Subnet group tier (network ACL variant owning tier).

    Attributes:
        public: Subnets route straight to an internet gateway
        nat_gateway: Subnets host NAT gateways used by private subnets
        ipv6: Subnets carry IPv6 traffic, so ACL rules are duplicated for IPv6
    """
    tier_type: ClassVar[TierType] = TierType.SUBNET_GROUP

    name: str
    subnet_ids: Tuple[str, ...] = ()
    network_acl_id: Optional[str] = None
    allow_all_to_self: Optional[bool] = None
    public: bool = False
    nat_gateway: bool = False
    ipv6: bool = False


@dataclass(frozen=True)
class Ipv6SubnetGroup(SubnetGroup):
    """A subnet group addressed over IPv6; only produced by the grouper."""
    tier_type: ClassVar[TierType] = TierType.IPV6_SUBNET_GROUP

    @classmethod
    def from_subnet_group(cls, subnet_group: SubnetGroup) -> 'Ipv6SubnetGroup':
        return cls(**{f.name: getattr(subnet_group, f.name) for f in fields(SubnetGroup)})


@dataclass(frozen=True)
class CidrBlock(_Tier):
    tier_type: ClassVar[TierType] = TierType.CIDR_BLOCK

    name: str
    cidr_blocks: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Ipv6CidrBlock(_Tier):
    tier_type: ClassVar[TierType] = TierType.IPV6_CIDR_BLOCK

    name: str
    ipv6_cidr_blocks: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PrefixList(_Tier):
    tier_type: ClassVar[TierType] = TierType.PREFIX_LIST

    name: str
    prefix_list_ids: Tuple[str, ...] = ()


NetworkTier = Union[SecurityGroup, SubnetGroup, Ipv6SubnetGroup, CidrBlock, Ipv6CidrBlock, PrefixList]

OwningTier = Union[SecurityGroup, SubnetGroup]


@dataclass(frozen=True)
class TierCollections:
    """
    Every tier declared by one policy document, grouped by kind.

    Collections are kept in resolution precedence order: security groups,
    subnet groups, CIDR blocks, IPv6 CIDR blocks, prefix lists.

    Raises:
        DuplicateNetworkTier: If a name is declared more than once
    """
    security_groups: Tuple[SecurityGroup, ...] = ()
    subnet_groups: Tuple[SubnetGroup, ...] = ()
    cidr_blocks: Tuple[CidrBlock, ...] = ()
    ipv6_cidr_blocks: Tuple[Ipv6CidrBlock, ...] = ()
    prefix_lists: Tuple[PrefixList, ...] = ()

    def __post_init__(self):
        duplicates = [name for name, count in Counter(self.all_names()).items() if count > 1]
        if duplicates:
            raise DuplicateNetworkTier(duplicates)

    def collections(self) -> Tuple[Tuple[NetworkTier, ...], ...]:
        return (
            self.security_groups,
            self.subnet_groups,
            self.cidr_blocks,
            self.ipv6_cidr_blocks,
            self.prefix_lists,
        )

    def all_tiers(self) -> List[NetworkTier]:
        return [tier for collection in self.collections() for tier in collection]

    def all_names(self) -> List[str]:
        return [tier.name for tier in self.all_tiers()]

    def security_group_names(self) -> List[str]:
        return [tier.name for tier in self.security_groups]

    def subnet_group_names(self) -> List[str]:
        return [tier.name for tier in self.subnet_groups]

    def cidr_block_names(self) -> List[str]:
        return [tier.name for tier in self.cidr_blocks]

    def ipv6_cidr_block_names(self) -> List[str]:
        return [tier.name for tier in self.ipv6_cidr_blocks]

    def private_subnet_group_names(self) -> List[str]:
        return [tier.name for tier in self.subnet_groups if not tier.public]

    def nat_gateway_subnet_group_names(self) -> List[str]:
        return [tier.name for tier in self.subnet_groups if tier.nat_gateway]

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            'security_groups': [tier.to_dict() for tier in self.security_groups],
            'subnet_groups': [tier.to_dict() for tier in self.subnet_groups],
            'cidr_blocks': [tier.to_dict() for tier in self.cidr_blocks],
            'ipv6_cidr_blocks': [tier.to_dict() for tier in self.ipv6_cidr_blocks],
            'prefix_lists': [tier.to_dict() for tier in self.prefix_lists],
        }


TierReference = Union[str, Sequence[str]]


class NetworkTierResolver:
    """
    Resolves tier names and aggregate keywords against a policy's tiers.

    Aggregate keywords:
        all                 - every declared tier, in precedence order
        all_security_groups - every security group
        all_subnet_groups   - every subnet group
    """

    ALL = 'all'
    ALL_SECURITY_GROUPS = 'all_security_groups'
    ALL_SUBNET_GROUPS = 'all_subnet_groups'

    def __init__(self, collections: TierCollections):
        self.collections = collections
        self._by_name: Dict[str, NetworkTier] = {}
        for tier in collections.all_tiers():
            self._by_name.setdefault(tier.name, tier)

    def resolve(self, name: str, role: Optional[str] = None) -> NetworkTier:
        tier = self._by_name.get(name)
        if tier is None:
            raise UnknownNetworkTier(name, role)
        return tier

    def expand_aggregate(self, reference: TierReference) -> List[str]:
        """
        Expand an aggregate keyword into tier names.

        Lists pass through unchanged and duplicates are kept; the
        deduplicator removes repeated rules later.
        """
        if isinstance(reference, str):
            if reference == self.ALL:
                return self.collections.all_names()
            if reference == self.ALL_SECURITY_GROUPS:
                return self.collections.security_group_names()
            if reference == self.ALL_SUBNET_GROUPS:
                return self.collections.subnet_group_names()
            return [reference]
        return list(reference)

    def resolve_reference(self, reference: TierReference, role: Optional[str] = None) -> List[NetworkTier]:
        return [self.resolve(name, role) for name in self.expand_aggregate(reference)]
