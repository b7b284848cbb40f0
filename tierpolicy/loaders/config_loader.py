"""
Policy document loader.

Reads a YAML policy document, validates it against the schema of its
flavour and converts it into the engine's immutable PolicyConfig.

Usage:
    config = load_policy('policies/prod.yml')
    result = expand_policy(config)

Flavour detection: a document whose network_tiers declare subnet_groups is a
network ACL policy, anything else a security group policy. Pass `variant`
explicitly to skip detection.
"""

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from ..errors import ConfigValidationError
from ..policy.engine import NETWORK_ACL_VARIANT, SECURITY_GROUP_VARIANT, VARIANTS, PolicyConfig, PolicyVariant
from ..policy.rules import RawTrafficRule
from ..policy.tiers import CidrBlock, Ipv6CidrBlock, PrefixList, SecurityGroup, SubnetGroup, TierCollections
from .schema import NetworkAclPolicyDocument, SecurityGroupPolicyDocument

logger = logging.getLogger(__name__)


VariantArg = Optional[Union[str, PolicyVariant]]


def detect_variant(data: Mapping[str, Any]) -> PolicyVariant:
    network_tiers = data.get('network_tiers') if isinstance(data, Mapping) else None
    if isinstance(network_tiers, Mapping) and 'subnet_groups' in network_tiers:
        return NETWORK_ACL_VARIANT
    return SECURITY_GROUP_VARIANT


def _resolve_variant(data: Mapping[str, Any], variant: VariantArg) -> PolicyVariant:
    if variant is None:
        return detect_variant(data)
    if isinstance(variant, PolicyVariant):
        return variant
    try:
        return VARIANTS[variant]
    except KeyError:
        raise ValueError(
            f"Unknown policy variant: {variant}. Expected one of: {', '.join(VARIANTS)}"
        ) from None


def validate_document(data: Any, variant: PolicyVariant):
    """
    Validate a parsed document against the variant's schema.

    Raises:
        ConfigValidationError: With one line per schema violation
    """
    document_class = NetworkAclPolicyDocument if variant is NETWORK_ACL_VARIANT else SecurityGroupPolicyDocument

    if not isinstance(data, Mapping):
        raise ConfigValidationError("Policy document must be a mapping")

    try:
        return document_class.model_validate(dict(data))
    except ValidationError as e:
        errors = e.errors(include_url=False)
        lines = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in errors
        ]
        raise ConfigValidationError(
            f"Invalid {variant.name} policy document:\n  " + "\n  ".join(lines),
            errors=errors,
        ) from e


def _tiers_from_document(document) -> TierCollections:
    network_tiers = document.network_tiers

    security_groups = tuple(
        SecurityGroup(**tier.model_dump())
        for tier in getattr(network_tiers, 'security_groups', [])
    )
    subnet_groups = tuple(
        SubnetGroup(**dict(tier.model_dump(), subnet_ids=tuple(tier.subnet_ids or ())))
        for tier in getattr(network_tiers, 'subnet_groups', [])
    )
    cidr_blocks = tuple(
        CidrBlock(name=tier.name, cidr_blocks=tuple(tier.cidr_blocks or ()))
        for tier in network_tiers.cidr_blocks
    )
    ipv6_cidr_blocks = tuple(
        Ipv6CidrBlock(name=tier.name, ipv6_cidr_blocks=tuple(tier.ipv6_cidr_blocks or ()))
        for tier in network_tiers.ipv6_cidr_blocks
    )
    prefix_lists = tuple(
        PrefixList(name=tier.name, prefix_list_ids=tuple(tier.prefix_list_ids or ()))
        for tier in getattr(network_tiers, 'prefix_lists', [])
    )

    return TierCollections(
        security_groups=security_groups,
        subnet_groups=subnet_groups,
        cidr_blocks=cidr_blocks,
        ipv6_cidr_blocks=ipv6_cidr_blocks,
        prefix_lists=prefix_lists,
    )


def to_policy_config(document, variant: PolicyVariant) -> PolicyConfig:
    """Convert a validated schema document into a PolicyConfig."""
    traffic_rules = tuple(
        RawTrafficRule.from_dict(rule.model_dump(by_alias=True, exclude_none=True))
        for rule in document.traffic_rules
    )

    return PolicyConfig(
        variant=variant,
        tiers=_tiers_from_document(document),
        traffic_rules=traffic_rules,
        allow_all_to_self=document.allow_all_to_self,
        allow_ephemeral=getattr(document, 'allow_ephemeral', False),
        ipv6=getattr(document, 'ipv6', False),
    )


def parse_policy(source: Union[str, Mapping[str, Any]], variant: VariantArg = None) -> PolicyConfig:
    """
    Parse a policy from YAML text or an already-loaded mapping.

    Args:
        source: YAML document text, or a mapping with the same structure
        variant: 'security_group', 'network_acl', a PolicyVariant, or None to
            detect from the document

    Returns:
        PolicyConfig ready for the engine

    Raises:
        ConfigValidationError: If the YAML is malformed or fails the schema
        DuplicateNetworkTier: If a tier name is declared twice
    """
    if isinstance(source, str):
        try:
            data = yaml.safe_load(source)
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Invalid YAML policy document: {e}") from e
    else:
        data = source

    resolved_variant = _resolve_variant(data if isinstance(data, Mapping) else {}, variant)
    document = validate_document(data, resolved_variant)
    config = to_policy_config(document, resolved_variant)

    logger.debug(
        "Parsed %s policy: %d tiers, %d traffic rules",
        resolved_variant.name, len(config.tiers.all_tiers()), len(config.traffic_rules),
    )
    return config


def load_policy(path: Union[str, Path], variant: VariantArg = None) -> PolicyConfig:
    """
    Load a policy document from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigValidationError: If the document is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Policy file not found: {path}")

    logger.info("Loading policy from %s", path)
    return parse_policy(path.read_text(encoding='utf-8'), variant)
