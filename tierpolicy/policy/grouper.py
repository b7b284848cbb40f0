"""
Deduplicator and Directional Grouper.

dedup() drops repeated expanded rules; group_rules() files each remaining
rule under every owning tier it touches, as ingress (tier is the
destination) or egress (tier is the source), with a generated rule name and
description.
"""

import logging
import re
from collections import Counter
from typing import Dict, Iterable, List, Sequence, Tuple

from ..errors import DuplicateRuleName
from .rules import Direction, DirectionalRule, ExpandedTrafficRule
from .tiers import Ipv6SubnetGroup, OwningTier, TierType

logger = logging.getLogger(__name__)


_NON_ALPHANUMERIC = re.compile(r'[^a-z0-9]+', re.IGNORECASE)

GroupedRules = Dict[str, Tuple[DirectionalRule, ...]]


def dedup(rules: Iterable[ExpandedTrafficRule]) -> Tuple[ExpandedTrafficRule, ...]:
    """
    Remove repeated rules, keeping the first occurrence in order.

    Two rules are the same when source tier, destination tier, ports,
    protocol and traffic type name match; descriptions are ignored.
    """
    seen = set()
    unique = []
    for rule in rules:
        key = rule.identity()
        if key in seen:
            continue
        seen.add(key)
        unique.append(rule)
    return tuple(unique)


def sanitize_rule_name(text: str) -> str:
    return _NON_ALPHANUMERIC.sub('_', text).lower()


def rule_name(rule: ExpandedTrafficRule, direction: Direction, ipv6: bool = False) -> str:
    prefix = 'allow_ipv6' if ipv6 else 'allow'
    return sanitize_rule_name(
        f"{prefix}_{rule.traffic_type_name}_{direction.value}"
        f"_from_{rule.source_tier.name}_to_{rule.destination_tier.name}"
    )


def rule_description(rule: ExpandedTrafficRule, direction: Direction, ipv6: bool = False) -> str:
    if rule.description is not None:
        return rule.description
    prefix = 'Allow IPV6' if ipv6 else 'Allow'
    return (
        f"{prefix} {rule.traffic_type_name} {direction.value}"
        f" from {rule.source_tier.name} to {rule.destination_tier.name}"
    )


def _directional_rules(rule: ExpandedTrafficRule,
                       direction: Direction,
                       duplicate_ipv6: bool,
                       global_ipv6: bool) -> List[DirectionalRule]:
    if direction is Direction.INGRESS:
        network_tier, other_network_tier = rule.destination_tier, rule.source_tier
    else:
        network_tier, other_network_tier = rule.source_tier, rule.destination_tier

    directional = [DirectionalRule(
        rule=rule,
        direction=direction,
        network_tier=network_tier,
        other_network_tier=other_network_tier,
        rule_name=rule_name(rule, direction),
        description=rule_description(rule, direction),
    )]

    if (duplicate_ipv6
            and other_network_tier.tier_type is TierType.SUBNET_GROUP
            and (global_ipv6 or other_network_tier.ipv6)):
        directional.append(DirectionalRule(
            rule=rule,
            direction=direction,
            network_tier=network_tier,
            other_network_tier=Ipv6SubnetGroup.from_subnet_group(other_network_tier),
            rule_name=rule_name(rule, direction, ipv6=True),
            description=rule_description(rule, direction, ipv6=True),
        ))

    return directional


def group_rules(rules: Sequence[ExpandedTrafficRule],
                owning_tiers: Iterable[OwningTier],
                duplicate_ipv6: bool = False,
                global_ipv6: bool = False) -> GroupedRules:
    """
    Group expanded rules by owning tier.

    Args:
        rules: Deduplicated expanded rules, in expansion order
        owning_tiers: Tiers that own a rule group (security groups or subnet
            groups); CIDR blocks and prefix lists never own one
        duplicate_ipv6: Add an IPv6 copy of rules whose other side is a
            subnet group carrying IPv6 (network ACL variant)
        global_ipv6: Treat every subnet group as carrying IPv6

    Returns:
        Mapping of tier name to its rules: all ingress rules, then all
        egress rules, each in expansion order. A self rule appears in both.

    Raises:
        DuplicateRuleName: If two different rules get the same rule name,
            e.g. tiers named web-1 and web_1
    """
    grouped: GroupedRules = {}

    for tier in owning_tiers:
        ingress: List[DirectionalRule] = []
        egress: List[DirectionalRule] = []

        for rule in rules:
            if rule.destination_tier.name == tier.name:
                ingress.extend(_directional_rules(rule, Direction.INGRESS, duplicate_ipv6, global_ipv6))
            if rule.source_tier.name == tier.name:
                egress.extend(_directional_rules(rule, Direction.EGRESS, duplicate_ipv6, global_ipv6))

        grouped[tier.name] = tuple(ingress + egress)
        logger.debug("Tier %s: %d ingress, %d egress rules", tier.name, len(ingress), len(egress))

    # Rule names become Terraform resource names in one module
    names = Counter(rule.rule_name for tier_rules in grouped.values() for rule in tier_rules)
    duplicates = [name for name, count in names.items() if count > 1]
    if duplicates:
        raise DuplicateRuleName(duplicates)

    return grouped
