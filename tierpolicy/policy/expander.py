"""
Rule Expander

Turns traffic rule shorthand into concrete ExpandedTrafficRule values: one
per (source tier, destination tier, traffic type) combination.

Expansion of a single rule:
    1. Resolve the rule-level protocol (number or name) and its name; every
       emitted rule carries that name, whatever its traffic types.
    2. Collect named traffic types, collapsing broad names: a list containing
       'all' becomes ['all'], otherwise 'all_tcp', otherwise 'all_udp'.
       A rule with neither port nor traffic_type means 'all'.
    3. Add one traffic type per port entry, named after the matching catalog
       entry (port 443/tcp -> 'https') or a synthesized
       'protocol_<name>_port_<n>' / 'protocol_<name>_from_port_<a>_to_port_<b>',
       where an unmapped protocol number stands in for <name>.
    4. Resolve source and destination references to tiers.
    5. Emit the cartesian product in declaration order.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .catalog import CATALOG, TrafficType, TrafficTypeCatalog
from .rules import ExpandedTrafficRule, PortRange, RawTrafficRule
from .tiers import NetworkTierResolver, OwningTier

logger = logging.getLogger(__name__)


ALL = 'all'
ALL_TCP = 'all_tcp'
ALL_UDP = 'all_udp'

# Broadest first
COLLAPSE_PRIORITY = (ALL, ALL_TCP, ALL_UDP)


def self_traffic_rules(owning_tiers: Iterable[OwningTier], allow_all_to_self: bool) -> Tuple[RawTrafficRule, ...]:
    """
    Build the implicit 'allow everything to myself' rules.

    A tier's own allow_all_to_self wins when set; tiers that leave it unset
    follow the policy-wide default.
    """
    rules = []
    for tier in owning_tiers:
        enabled = tier.allow_all_to_self if tier.allow_all_to_self is not None else allow_all_to_self
        if enabled:
            rules.append(RawTrafficRule(source=tier.name, destination=tier.name, traffic_type=ALL))
    return tuple(rules)


def collapse_traffic_type_names(names: Sequence[str]) -> List[str]:
    for broad in COLLAPSE_PRIORITY:
        if broad in names:
            return [broad]
    return list(names)


def _as_list(value) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class RuleExpander:
    """
    Expands RawTrafficRule shorthand against one policy's tiers.

    Args:
        resolver: Tier resolver for the policy being expanded
        catalog: Traffic type catalog (defaults to the built-in one)

    Raises (from expand / expand_rule):
        UnknownTrafficType: A traffic_type name is not in the catalog
        UnknownNetworkTier: A source or destination name is not declared
    """

    def __init__(self, resolver: NetworkTierResolver, catalog: TrafficTypeCatalog = CATALOG):
        self.resolver = resolver
        self.catalog = catalog

    def expand(self, rules: Iterable[RawTrafficRule]) -> Tuple[ExpandedTrafficRule, ...]:
        expanded: List[ExpandedTrafficRule] = []
        count = 0
        for rule in rules:
            expanded.extend(self.expand_rule(rule))
            count += 1
        logger.debug("Expanded %d traffic rules into %d rules", count, len(expanded))
        return tuple(expanded)

    def expand_rule(self, rule: RawTrafficRule) -> List[ExpandedTrafficRule]:
        traffic_types = self.traffic_types(rule)
        protocol_name = self.rule_protocol_name(rule.protocol)

        source_tiers = self.resolver.resolve_reference(rule.source, 'source')
        destination_tiers = self.resolver.resolve_reference(rule.destination, 'destination')

        return [
            ExpandedTrafficRule(
                source_tier=source_tier,
                destination_tier=destination_tier,
                from_port=traffic_type.from_port,
                to_port=traffic_type.to_port,
                protocol=traffic_type.protocol,
                protocol_name=protocol_name,
                traffic_type_name=name,
                description=rule.description,
            )
            for source_tier in source_tiers
            for destination_tier in destination_tiers
            for name, traffic_type in traffic_types.items()
        ]

    def traffic_types(self, rule: RawTrafficRule) -> Dict[str, TrafficType]:
        """
        Build the ordered name -> TrafficType mapping for one rule.

        Named types are added first, then ports. A later entry with the same
        name replaces the earlier one in place.
        """
        traffic_types: Dict[str, TrafficType] = {}

        names = rule.traffic_type
        if rule.port is None and names is None:
            names = ALL

        if names is not None:
            for name in collapse_traffic_type_names(_as_list(names)):
                traffic_types[name] = self.catalog.lookup_by_name(name)

        if rule.port is not None:
            for port in _as_list(rule.port):
                name, traffic_type = self._port_traffic_type(port, rule.protocol)
                traffic_types[name] = traffic_type

        return traffic_types

    def _port_traffic_type(self, port, protocol) -> Tuple[str, TrafficType]:
        if isinstance(port, PortRange):
            from_port, to_port = port.from_port, port.to_port
        else:
            from_port = to_port = port

        traffic_type = self.catalog.normalize({
            'from_port': from_port,
            'to_port': to_port,
            'protocol': protocol,
        })

        name = self.catalog.identify_by_type(traffic_type)
        if name is None:
            label = self._protocol_label(traffic_type)
            if label is None:
                label = str(traffic_type.protocol)
            if from_port == to_port:
                name = f"protocol_{label}_port_{from_port}"
            else:
                name = f"protocol_{label}_from_port_{from_port}_to_port_{to_port}"
        return name, traffic_type

    def rule_protocol_name(self, protocol: Union[None, int, str]) -> Optional[str]:
        """
        Name of a rule-level protocol, copied onto every rule it expands to.

        Strings are kept verbatim and numbers go through the protocol table.
        A rule without a protocol has no name.
        """
        if isinstance(protocol, str):
            return protocol
        return self.catalog.protocol_name(protocol)

    def _protocol_label(self, traffic_type: TrafficType) -> Optional[str]:
        if isinstance(traffic_type.protocol, str):
            return traffic_type.protocol
        return self.catalog.protocol_name(traffic_type.protocol)
