"""
Traffic policy expansion.

Exports:
    PolicyEngine / expand_policy - Run the full pipeline on a PolicyConfig
    PolicyConfig / PolicyResult - Engine input and output
    SECURITY_GROUP_VARIANT / NETWORK_ACL_VARIANT - Supported policy flavours
    CATALOG / TrafficType - Built-in traffic type catalog
    Network tier variants and the NetworkTierResolver
    RawTrafficRule / ExpandedTrafficRule / DirectionalRule - Rule records
"""

from .catalog import CATALOG, TrafficType, TrafficTypeCatalog
from .engine import (
    NETWORK_ACL_VARIANT,
    SECURITY_GROUP_VARIANT,
    VARIANTS,
    PolicyConfig,
    PolicyEngine,
    PolicyResult,
    PolicyVariant,
    expand_policy,
)
from .grouper import dedup, group_rules
from .rules import Direction, DirectionalRule, ExpandedTrafficRule, PortRange, RawTrafficRule
from .tiers import (
    CidrBlock,
    Ipv6CidrBlock,
    Ipv6SubnetGroup,
    NetworkTierResolver,
    PrefixList,
    SecurityGroup,
    SubnetGroup,
    TierCollections,
    TierType,
)

__all__ = [
    'CATALOG',
    'TrafficType',
    'TrafficTypeCatalog',
    'NETWORK_ACL_VARIANT',
    'SECURITY_GROUP_VARIANT',
    'VARIANTS',
    'PolicyConfig',
    'PolicyEngine',
    'PolicyResult',
    'PolicyVariant',
    'expand_policy',
    'dedup',
    'group_rules',
    'Direction',
    'DirectionalRule',
    'ExpandedTrafficRule',
    'PortRange',
    'RawTrafficRule',
    'CidrBlock',
    'Ipv6CidrBlock',
    'Ipv6SubnetGroup',
    'NetworkTierResolver',
    'PrefixList',
    'SecurityGroup',
    'SubnetGroup',
    'TierCollections',
    'TierType',
]
