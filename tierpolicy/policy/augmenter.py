"""
Ephemeral/NAT Augmenter for stateless network ACLs.

Network ACLs do not track connections, so every allowed flow also needs its
return traffic on the ephemeral port range, and private subnets that reach
the internet do so through the subnets hosting NAT gateways.
"""

import logging
from typing import List, Sequence, Tuple

from .catalog import TCP
from .rules import PortRange, RawTrafficRule
from .tiers import TierCollections

logger = logging.getLogger(__name__)


EPHEMERAL_PORTS = PortRange(1024, 65535)


def augment_ephemeral(rules: Sequence[RawTrafficRule], collections: TierCollections) -> Tuple[RawTrafficRule, ...]:
    """
    Append return-traffic and NAT-traversal rules for the given rules.

    For each rule in `rules` (never for the rules this function adds):
        - a reverse rule, destination -> source, TCP 1024-65535
        - when the source is a private subnet group and the destination is a
          CIDR or IPv6 CIDR block, the same traffic from the source to every
          NAT gateway subnet group

    Args:
        rules: Raw rules, including the injected self-traffic rules
        collections: Tiers of the policy

    Returns:
        The original rules followed by all synthesized rules
    """
    private_subnet_groups = set(collections.private_subnet_group_names())
    external_blocks = set(collections.cidr_block_names()) | set(collections.ipv6_cidr_block_names())
    nat_gateway_subnet_groups = tuple(collections.nat_gateway_subnet_group_names())

    synthesized: List[RawTrafficRule] = []
    for rule in rules:
        synthesized.append(RawTrafficRule(
            source=rule.destination,
            destination=rule.source,
            port=EPHEMERAL_PORTS,
            protocol=TCP,
        ))

        # Only single-name references are matched; lists and keywords are not
        if rule.source in private_subnet_groups and rule.destination in external_blocks:
            synthesized.append(RawTrafficRule(
                source=rule.source,
                destination=nat_gateway_subnet_groups,
                port=rule.port,
                traffic_type=rule.traffic_type,
                protocol=rule.protocol,
            ))

    logger.debug("Synthesized %d ephemeral/NAT rules from %d rules", len(synthesized), len(rules))
    return tuple(rules) + tuple(synthesized)
