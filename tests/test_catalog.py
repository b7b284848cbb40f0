"""
Unit Tests for the Traffic Type Catalog
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from tierpolicy.errors import UnknownProtocol, UnknownTrafficType
from tierpolicy.policy.catalog import CATALOG, TrafficType, TrafficTypeCatalog


def test_lookup_by_name():
    """
    Test named traffic type lookup.

    Verifies:
        - Bare port entries normalize to TCP single-port types
        - Range entries keep their protocol number
        - Unknown names raise UnknownTrafficType
    """
    assert CATALOG.lookup_by_name('https') == TrafficType(443, 443, 6)
    assert CATALOG.lookup_by_name('dns_udp') == TrafficType(53, 53, 17)
    assert CATALOG.lookup_by_name('all') == TrafficType(0, 65535, -1)
    assert CATALOG.lookup_by_name('icmp_ipv6') == TrafficType(0, 65535, 58)

    with pytest.raises(UnknownTrafficType) as exc_info:
        CATALOG.lookup_by_name('gopher')
    assert exc_info.value.name == 'gopher'

    print("✓ Lookup by name test passed")


def test_normalize_shorthand():
    """
    Test shorthand normalization.

    Verifies:
        - A bare integer implies TCP
        - port / from_port / to_port mappings are accepted
        - Known protocol names become protocol numbers
        - Unknown protocol names are kept verbatim
    """
    assert CATALOG.normalize(22) == TrafficType(22, 22, 6)
    assert CATALOG.normalize({'port': 53, 'protocol': 'udp'}) == TrafficType(53, 53, 17)
    assert CATALOG.normalize({'from_port': 1024, 'to_port': 2048}) == TrafficType(1024, 2048, 6)
    assert CATALOG.normalize({'port': 80, 'protocol': 6}) == TrafficType(80, 80, 6)
    assert CATALOG.normalize({'port': 9, 'protocol': 'gre'}) == TrafficType(9, 9, 'gre')

    with pytest.raises(ValueError):
        CATALOG.normalize('https')

    print("✓ Normalize shorthand test passed")


def test_identify_by_type_uses_declaration_order():
    """
    Test reverse lookup.

    Verifies:
        - port 443 over TCP (by number or by name) is 'https'
        - Ties resolve to the first declared entry ('mysql' before 'aurora')
        - Protocol is part of the identity ('dns' vs 'dns_udp')
        - Unmatched types return None
    """
    assert CATALOG.identify_by_type(TrafficType(443, 443, 6)) == 'https'
    assert CATALOG.identify_by_type({'port': 443, 'protocol': 'tcp'}) == 'https'
    assert CATALOG.identify_by_type(3306) == 'mysql'
    assert CATALOG.identify_by_type(53) == 'dns'
    assert CATALOG.identify_by_type({'port': 53, 'protocol': 17}) == 'dns_udp'
    assert CATALOG.identify_by_type(8080) is None

    print("✓ Identify by type test passed")


def test_protocol_table():
    """
    Test protocol number lookups in both directions.
    """
    assert CATALOG.protocol_number('tcp') == 6
    assert CATALOG.protocol_number('icmp_ipv6') == 58
    assert CATALOG.protocol_name(17) == 'udp'
    assert CATALOG.protocol_name(-1) is None
    assert CATALOG.protocol_name('tcp') is None

    with pytest.raises(UnknownProtocol):
        CATALOG.protocol_number('sctp')

    print("✓ Protocol table test passed")


def test_custom_catalog():
    """
    Test that a catalog can be built from another table.

    Verifies:
        - Entries are normalized at construction
        - Iteration keeps declaration order
    """
    catalog = TrafficTypeCatalog(
        {'web': {'from_port': 80, 'to_port': 80}, 'alt_web': 80},
        {'tcp': 6},
    )
    assert len(catalog) == 2
    assert 'web' in catalog
    assert catalog.identify_by_type(80) == 'web'
    assert [name for name, _ in catalog] == ['web', 'alt_web']

    print("✓ Custom catalog test passed")


if __name__ == "__main__":
    test_lookup_by_name()
    test_normalize_shorthand()
    test_identify_by_type_uses_declaration_order()
    test_protocol_table()
    test_custom_catalog()
    print("\nAll tests passed!")
