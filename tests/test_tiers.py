"""
Unit Tests for Network Tiers and the Tier Resolver
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from tierpolicy.errors import DuplicateNetworkTier, UnknownNetworkTier
from tierpolicy.policy.tiers import (
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


# Mock tier collections for a three-tier security group policy
MOCK_COLLECTIONS = TierCollections(
    security_groups=(SecurityGroup('web'), SecurityGroup('app'), SecurityGroup('db')),
    cidr_blocks=(CidrBlock('office', ('203.0.113.0/24',)),),
    ipv6_cidr_blocks=(Ipv6CidrBlock('office_v6', ('2001:db8::/32',)),),
    prefix_lists=(PrefixList('s3', ('pl-12345678',)),),
)


def test_resolve_by_name():
    """
    Test tier resolution.

    Verifies:
        - Each tier kind resolves to its typed record
        - Unknown names raise UnknownNetworkTier naming the role
    """
    resolver = NetworkTierResolver(MOCK_COLLECTIONS)

    assert resolver.resolve('web') == SecurityGroup('web')
    assert resolver.resolve('office').tier_type is TierType.CIDR_BLOCK
    assert resolver.resolve('office_v6').tier_type is TierType.IPV6_CIDR_BLOCK
    assert resolver.resolve('s3').tier_type is TierType.PREFIX_LIST

    with pytest.raises(UnknownNetworkTier) as exc_info:
        resolver.resolve('cache', 'destination')
    assert str(exc_info.value) == 'Unknown destination network tier: cache'

    print("✓ Resolve by name test passed")


def test_expand_aggregate():
    """
    Test aggregate keyword expansion.

    Verifies:
        - 'all' covers every tier in collection precedence order
        - 'all_security_groups' / 'all_subnet_groups' restrict to one collection
        - Plain names and lists pass through unchanged
    """
    resolver = NetworkTierResolver(MOCK_COLLECTIONS)

    assert resolver.expand_aggregate('all') == ['web', 'app', 'db', 'office', 'office_v6', 's3']
    assert resolver.expand_aggregate('all_security_groups') == ['web', 'app', 'db']
    assert resolver.expand_aggregate('all_subnet_groups') == []
    assert resolver.expand_aggregate('web') == ['web']
    assert resolver.expand_aggregate(('db', 'db', 'web')) == ['db', 'db', 'web']

    tiers = resolver.resolve_reference('all_security_groups', 'source')
    assert [tier.name for tier in tiers] == ['web', 'app', 'db']

    print("✓ Aggregate expansion test passed")


def test_duplicate_tier_names_rejected():
    """
    Test that tier names must be unique across collections.
    """
    with pytest.raises(DuplicateNetworkTier) as exc_info:
        TierCollections(
            security_groups=(SecurityGroup('shared'),),
            cidr_blocks=(CidrBlock('shared', ('10.0.0.0/8',)),),
        )
    assert exc_info.value.names == ['shared']

    print("✓ Duplicate tier name test passed")


def test_subnet_group_helpers():
    """
    Test subnet group classification and IPv6 re-tagging.

    Verifies:
        - Private and NAT gateway subnet groups are listed in order
        - Ipv6SubnetGroup keeps every field and only changes the tag
        - to_dict carries the type tag and lists instead of tuples
    """
    collections = TierCollections(subnet_groups=(
        SubnetGroup('public', subnet_ids=('subnet-1',), public=True, nat_gateway=True),
        SubnetGroup('app', subnet_ids=('subnet-2', 'subnet-3'), ipv6=True),
        SubnetGroup('db'),
    ))
    assert collections.private_subnet_group_names() == ['app', 'db']
    assert collections.nat_gateway_subnet_group_names() == ['public']

    app = collections.subnet_groups[1]
    ipv6_app = Ipv6SubnetGroup.from_subnet_group(app)
    assert ipv6_app.tier_type is TierType.IPV6_SUBNET_GROUP
    assert ipv6_app.subnet_ids == app.subnet_ids
    assert ipv6_app.ipv6 is True

    data = ipv6_app.to_dict()
    assert data['type'] == 'ipv6_subnet_group'
    assert data['subnet_ids'] == ['subnet-2', 'subnet-3']

    print("✓ Subnet group helper test passed")


if __name__ == "__main__":
    test_resolve_by_name()
    test_expand_aggregate()
    test_duplicate_tier_names_rejected()
    test_subnet_group_helpers()
    print("\nAll tests passed!")
