"""
Unit Tests for Policy Document Loading

Covers flavour detection, schema validation errors and conversion into the
engine's PolicyConfig.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from tierpolicy.errors import ConfigValidationError, DuplicateNetworkTier
from tierpolicy.loaders import detect_variant, load_policy, parse_policy
from tierpolicy.policy import NETWORK_ACL_VARIANT, SECURITY_GROUP_VARIANT, PortRange, SubnetGroup


FIXTURES = Path(__file__).parent / "fixtures"

MINIMAL_POLICY = """
network_tiers:
  security_groups:
    - name: web
traffic_rules:
  - source: web
    destination: web
"""


def test_detect_variant():
    """
    Test flavour detection from network_tiers.
    """
    assert detect_variant({'network_tiers': {'subnet_groups': []}}) is NETWORK_ACL_VARIANT
    assert detect_variant({'network_tiers': {'security_groups': []}}) is SECURITY_GROUP_VARIANT
    assert detect_variant({}) is SECURITY_GROUP_VARIANT

    print("✓ Variant detection test passed")


def test_load_security_group_fixture():
    """
    Test loading a security group policy file.

    Verifies:
        - Tiers are converted in collection order with their attributes
        - Rule shorthand is frozen (lists become tuples)
        - Top-level defaults apply
    """
    config = load_policy(FIXTURES / "security_group_policy.yml")

    assert config.variant is SECURITY_GROUP_VARIANT
    assert config.allow_all_to_self is True
    assert config.tiers.security_group_names() == ['web', 'app', 'db']
    assert config.tiers.security_groups[0].security_group_id == 'sg-0a1b2c3d4e5f60001'
    assert config.tiers.security_groups[1].allow_all_to_self is False
    assert config.tiers.security_groups[2].allow_all_to_self is None
    assert config.tiers.cidr_blocks[1].cidr_blocks == ('198.51.100.0/24', '203.0.113.0/24')
    assert config.tiers.prefix_lists[0].prefix_list_ids == ('pl-63a5400a',)

    first = config.traffic_rules[0]
    assert first.source == ('internet', 'internet_v6')
    assert first.traffic_type == ('http', 'https')
    assert config.traffic_rules[4].protocol == 'tcp'

    print("✓ Security group fixture test passed")


def test_load_network_acl_fixture():
    """
    Test loading a network ACL policy file.
    """
    config = load_policy(FIXTURES / "network_acl_policy.yml")

    assert config.variant is NETWORK_ACL_VARIANT
    assert config.allow_ephemeral is True
    assert config.ipv6 is False
    assert config.tiers.subnet_groups[0] == SubnetGroup(
        name='public',
        subnet_ids=('subnet-0001', 'subnet-0002'),
        network_acl_id='acl-0a1b2c3d',
        public=True,
        nat_gateway=True,
    )
    assert config.traffic_rules[1].port == PortRange(8000, 8100)

    print("✓ Network ACL fixture test passed")


def test_parse_policy_from_text_and_mapping():
    """
    Test parsing inline YAML and plain mappings.
    """
    from_text = parse_policy(MINIMAL_POLICY)
    from_mapping = parse_policy({
        'network_tiers': {'security_groups': [{'name': 'web'}]},
        'traffic_rules': [{'source': 'web', 'destination': 'web'}],
    })
    assert from_text == from_mapping

    print("✓ Parse policy test passed")


def test_schema_errors():
    """
    Test validation failures.

    Verifies:
        - Unknown keys, missing tiers and malformed CIDRs are rejected
        - Each error names its location
        - Forcing the wrong flavour fails validation
        - Malformed YAML is reported as a validation error
    """
    with pytest.raises(ConfigValidationError) as exc_info:
        parse_policy(MINIMAL_POLICY.replace("- name: web", "- name: web\n      colour: blue"))
    assert 'colour' in str(exc_info.value)

    with pytest.raises(ConfigValidationError) as exc_info:
        parse_policy({
            'network_tiers': {
                'security_groups': [{'name': 'web'}],
                'cidr_blocks': [{'name': 'bad', 'cidr_blocks': ['10.0.0.0/33']}],
            },
            'traffic_rules': [{'source': 'web', 'destination': 'bad'}],
        })
    assert 'network_tiers.cidr_blocks.0.cidr_blocks' in str(exc_info.value)
    assert exc_info.value.errors

    with pytest.raises(ConfigValidationError):
        parse_policy({
            'network_tiers': {
                'security_groups': [{'name': 'web'}],
                'ipv6_cidr_blocks': [{'name': 'v6', 'ipv6_cidr_blocks': ['10.0.0.0/8']}],
            },
            'traffic_rules': [{'source': 'web', 'destination': 'v6'}],
        })

    with pytest.raises(ConfigValidationError):
        parse_policy(MINIMAL_POLICY, variant='network_acl')

    with pytest.raises(ConfigValidationError):
        parse_policy("network_tiers: [unclosed")

    with pytest.raises(ConfigValidationError):
        parse_policy("- just\n- a list\n")

    with pytest.raises(ValueError):
        parse_policy(MINIMAL_POLICY, variant='firewall')

    print("✓ Schema error test passed")


def test_duplicate_tier_names():
    """
    Test that duplicate tier names are rejected at load time.
    """
    with pytest.raises(DuplicateNetworkTier):
        parse_policy({
            'network_tiers': {
                'security_groups': [{'name': 'web'}],
                'cidr_blocks': [{'name': 'web', 'cidr_blocks': ['10.0.0.0/8']}],
            },
            'traffic_rules': [{'source': 'web', 'destination': 'web'}],
        })

    print("✓ Duplicate tier name test passed")


def test_missing_file(tmp_path):
    """
    Test loading a policy file that does not exist.
    """
    with pytest.raises(FileNotFoundError):
        load_policy(tmp_path / "missing.yml")

    print("✓ Missing file test passed")


if __name__ == "__main__":
    import tempfile

    test_detect_variant()
    test_load_security_group_fixture()
    test_load_network_acl_fixture()
    test_parse_policy_from_text_and_mapping()
    test_schema_errors()
    test_duplicate_tier_names()
    with tempfile.TemporaryDirectory() as tmp:
        test_missing_file(Path(tmp))
    print("\nAll tests passed!")
