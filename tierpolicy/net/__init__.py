"""
IPv4 address arithmetic used to validate and summarize CIDR tiers.

Exports:
    CidrInfo - Parsed CIDR block (masks, network start and end)
    Ipv4Range - Inclusive integer address range
    parse_cidr, range_to_cidr, consolidate - Main entry points
"""

from .ipv4 import (
    CidrInfo,
    Ipv4Range,
    bitmask,
    cidr_prefix_to_mask,
    consolidate,
    int_to_ipv4,
    ipv4_in_cidr,
    ipv4_in_range,
    ipv4_to_int,
    mask_to_prefix,
    parse_cidr,
    range_subnet_mask,
    range_to_cidr,
    ranges_to_cidrs,
    validate_ipv4,
    validate_ipv4_cidr,
    wildcard,
)

__all__ = [
    'CidrInfo',
    'Ipv4Range',
    'bitmask',
    'cidr_prefix_to_mask',
    'consolidate',
    'int_to_ipv4',
    'ipv4_in_cidr',
    'ipv4_in_range',
    'ipv4_to_int',
    'mask_to_prefix',
    'parse_cidr',
    'range_subnet_mask',
    'range_to_cidr',
    'ranges_to_cidrs',
    'validate_ipv4',
    'validate_ipv4_cidr',
    'wildcard',
]
