"""
Traffic-Policy Expansion Engine

Runs the expansion pipeline for one policy document:

    raw rules
      -> self-traffic rules injected for each owning tier
      -> ephemeral/NAT rules appended      (network ACL variant only)
      -> RuleExpander                      (tier resolver + catalog)
      -> dedup
      -> group_rules                       (ingress then egress per tier)

The security group and network ACL flavours are the same engine driven by a
PolicyVariant: which tiers own rule groups, whether the ephemeral/NAT step
runs, and whether IPv6 duplicates are produced.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .augmenter import augment_ephemeral
from .catalog import CATALOG, TrafficTypeCatalog
from .expander import RuleExpander, self_traffic_rules
from .grouper import GroupedRules, dedup, group_rules
from .rules import Direction, ExpandedTrafficRule, RawTrafficRule
from .tiers import NetworkTierResolver, OwningTier, TierCollections

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyVariant:
    """
    Describes one flavour of policy document.

    Attributes:
        name: Variant identifier ('security_group' or 'network_acl')
        owning_collection: TierCollections attribute holding the owning tiers
        ephemeral: Whether the ephemeral/NAT augmenter runs (when the policy
            allows it)
        ipv6_duplicates: Whether grouped rules get IPv6 copies
    """
    name: str
    owning_collection: str
    ephemeral: bool = False
    ipv6_duplicates: bool = False

    def owning_tiers(self, collections: TierCollections) -> Tuple[OwningTier, ...]:
        return tuple(getattr(collections, self.owning_collection))


SECURITY_GROUP_VARIANT = PolicyVariant(
    name='security_group',
    owning_collection='security_groups',
)

NETWORK_ACL_VARIANT = PolicyVariant(
    name='network_acl',
    owning_collection='subnet_groups',
    ephemeral=True,
    ipv6_duplicates=True,
)

VARIANTS: Dict[str, PolicyVariant] = {
    SECURITY_GROUP_VARIANT.name: SECURITY_GROUP_VARIANT,
    NETWORK_ACL_VARIANT.name: NETWORK_ACL_VARIANT,
}


@dataclass(frozen=True)
class PolicyConfig:
    """
    A validated policy document in engine types.

    Attributes:
        variant: Policy flavour
        tiers: Declared network tiers
        traffic_rules: Rules in declaration order
        allow_all_to_self: Default for tiers without their own setting
        allow_ephemeral: Run the ephemeral/NAT step (network ACL variant)
        ipv6: Duplicate subnet group rules for IPv6 (network ACL variant)
    """
    variant: PolicyVariant
    tiers: TierCollections
    traffic_rules: Tuple[RawTrafficRule, ...]
    allow_all_to_self: bool = True
    allow_ephemeral: bool = True
    ipv6: bool = False


@dataclass(frozen=True)
class PolicyResult:
    """Expanded and grouped rules for one policy."""
    config: PolicyConfig
    expanded_traffic_rules: Tuple[ExpandedTrafficRule, ...]
    grouped_traffic_rules: GroupedRules = field(default_factory=dict)

    @property
    def variant(self) -> PolicyVariant:
        return self.config.variant

    def owning_tiers(self) -> Tuple[OwningTier, ...]:
        return self.variant.owning_tiers(self.config.tiers)

    def get_summary(self) -> Dict[str, Any]:
        groups = []
        for name, rules in self.grouped_traffic_rules.items():
            ingress = sum(1 for rule in rules if rule.direction is Direction.INGRESS)
            groups.append({
                'network_tier': name,
                'ingress_rule_count': ingress,
                'egress_rule_count': len(rules) - ingress,
                'total_rules': len(rules),
            })

        return {
            'variant': self.variant.name,
            'total_network_tiers': len(self.config.tiers.all_tiers()),
            'total_traffic_rules': len(self.config.traffic_rules),
            'total_expanded_rules': len(self.expanded_traffic_rules),
            'total_grouped_rules': sum(g['total_rules'] for g in groups),
            'rule_groups': groups,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            'expanded_traffic_rules': [rule.to_dict() for rule in self.expanded_traffic_rules],
            'grouped_traffic_rules': {
                name: [rule.to_dict() for rule in rules]
                for name, rules in self.grouped_traffic_rules.items()
            },
        }


class PolicyEngine:
    """
    Expands policy configs into grouped directional rules.

    Usage:
        engine = PolicyEngine()
        result = engine.run(config)
        result.grouped_traffic_rules['web']
    """

    def __init__(self, catalog: TrafficTypeCatalog = CATALOG):
        self.catalog = catalog

    def prepare_rules(self, config: PolicyConfig) -> Tuple[RawTrafficRule, ...]:
        """Raw rules after self-traffic injection and, if enabled, augmentation."""
        owning_tiers = config.variant.owning_tiers(config.tiers)
        rules = tuple(config.traffic_rules) + self_traffic_rules(owning_tiers, config.allow_all_to_self)

        if config.variant.ephemeral and config.allow_ephemeral:
            rules = augment_ephemeral(rules, config.tiers)

        return rules

    def run(self, config: PolicyConfig) -> PolicyResult:
        resolver = NetworkTierResolver(config.tiers)
        expander = RuleExpander(resolver, self.catalog)

        rules = self.prepare_rules(config)
        expanded = dedup(expander.expand(rules))

        grouped = group_rules(
            expanded,
            config.variant.owning_tiers(config.tiers),
            duplicate_ipv6=config.variant.ipv6_duplicates,
            global_ipv6=config.ipv6,
        )

        logger.info(
            "Expanded %s policy: %d raw rules, %d expanded rules, %d rule groups",
            config.variant.name, len(rules), len(expanded), len(grouped),
        )
        return PolicyResult(config=config, expanded_traffic_rules=expanded, grouped_traffic_rules=grouped)


def expand_policy(config: PolicyConfig, catalog: TrafficTypeCatalog = CATALOG) -> PolicyResult:
    return PolicyEngine(catalog).run(config)
