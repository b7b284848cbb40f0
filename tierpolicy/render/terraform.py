"""
Terraform renderer for expanded policies.

Produces one rule file per owning tier plus a variables.tf declaring one
variable per tier attribute (security group IDs, CIDR lists, prefix list
IDs, network ACL IDs). Rule files reference those variables, so the rendered
directory can be dropped into a Terraform module and wired up by the caller.

Files:
    security_group_rules_<tier>.tf - security group variant
    network_acl_rules_<tier>.tf    - network ACL variant
    variables.tf
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .. import settings
from ..policy.engine import NETWORK_ACL_VARIANT, PolicyResult
from ..policy.rules import Direction
from ..policy.tiers import NetworkTier, TierType

logger = logging.getLogger(__name__)


SECURITY_GROUP_RULE_TEMPLATE = 'aws_security_group_rule.tf.jinja2'
NETWORK_ACL_RULE_TEMPLATE = 'aws_network_acl_rule.tf.jinja2'
VARIABLE_TEMPLATE = 'variable.tf.jinja2'

# Network ACL rule numbers: each rule resource gets a block of numbers for
# its per-CIDR count, at least RULE_NUMBER_STRIDE wide.
FIRST_RULE_NUMBER = 100
RULE_NUMBER_STRIDE = 10
MAX_RULE_NUMBER = 32766


@dataclass(frozen=True)
class RenderedFile:
    file_name: str
    file_contents: str

    def to_dict(self) -> Dict[str, str]:
        return {'file_name': self.file_name, 'file_contents': self.file_contents}


def _hcl(value: Any) -> str:
    """Render a Python value as an HCL literal (JSON is valid HCL here)."""
    return json.dumps(value)


# CIDR list variables whose length sets a peer's block of rule numbers
_CIDR_LIST_VARIABLES = ('cidr_blocks', 'ipv6_cidr_blocks')


def rule_number_span(peer: NetworkTier) -> int:
    """
    Rule numbers reserved for one network ACL rule against peer.

    CIDR blocks reserve one number per declared CIDR and subnet groups one
    per subnet, never less than RULE_NUMBER_STRIDE. The variables file caps
    each CIDR list variable at this span, so CIDRs supplied later through
    Terraform cannot run into the next rule's numbers.
    """
    if peer.tier_type is TierType.CIDR_BLOCK:
        declared = len(peer.cidr_blocks)
    elif peer.tier_type is TierType.IPV6_CIDR_BLOCK:
        declared = len(peer.ipv6_cidr_blocks)
    elif peer.tier_type in (TierType.SUBNET_GROUP, TierType.IPV6_SUBNET_GROUP):
        declared = len(peer.subnet_ids)
    else:
        raise ValueError(f"{peer.tier_type.value} {peer.name} cannot be a network ACL peer")
    return max(RULE_NUMBER_STRIDE, declared)


# Variable (suffix, terraform type, tier attribute) per tier type
_TIER_VARIABLES = {
    TierType.SECURITY_GROUP: [('security_group_id', 'string', 'security_group_id')],
    TierType.SUBNET_GROUP: [
        ('network_acl_id', 'string', 'network_acl_id'),
        ('subnet_ids', 'list(string)', 'subnet_ids'),
        ('cidr_blocks', 'list(string)', None),
        ('ipv6_cidr_blocks', 'list(string)', None),
    ],
    TierType.CIDR_BLOCK: [('cidr_blocks', 'list(string)', 'cidr_blocks')],
    TierType.IPV6_CIDR_BLOCK: [('ipv6_cidr_blocks', 'list(string)', 'ipv6_cidr_blocks')],
    TierType.PREFIX_LIST: [('prefix_list_ids', 'list(string)', 'prefix_list_ids')],
}


class TerraformRenderer:
    """
    Renders a PolicyResult into Terraform files using Jinja2 templates.

    Args:
        templates_dir: Directory holding the templates; defaults to
            TIERPOLICY_TEMPLATES_DIR or the bundled templates
    """

    def __init__(self, templates_dir: Optional[Union[str, Path]] = None):
        self.templates_dir = Path(templates_dir) if templates_dir else settings.get_templates_dir()
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=False,
        )
        self.env.filters['hcl'] = _hcl

    def render(self, result: PolicyResult) -> List[RenderedFile]:
        files = []
        for tier_name, rules in result.grouped_traffic_rules.items():
            if result.variant is NETWORK_ACL_VARIANT:
                files.append(self.render_network_acl_rules(tier_name, rules))
            else:
                files.append(self.render_security_group_rules(tier_name, rules))

        files.append(self.render_variables(
            result.config.tiers.all_tiers(),
            limit_cidr_lists=result.variant is NETWORK_ACL_VARIANT,
        ))
        logger.info("Rendered %d files for %s policy", len(files), result.variant.name)
        return files

    def render_security_group_rules(self, tier_name: str, rules: Sequence) -> RenderedFile:
        template = self.env.get_template(SECURITY_GROUP_RULE_TEMPLATE)
        rendered = [template.render(rule=rule.to_dict()) for rule in rules]
        return RenderedFile(f"security_group_rules_{tier_name}.tf", '\n\n'.join(rendered))

    def render_network_acl_rules(self, tier_name: str, rules: Sequence) -> RenderedFile:
        """
        Render network ACL rules with rule numbers.

        Ingress and egress are numbered independently (AWS keeps separate
        rule lists), in group order, starting at FIRST_RULE_NUMBER. Each rule
        takes rule_number_span() numbers for its peer's CIDRs.

        Raises:
            ValueError: If a tier has more rules than fit below MAX_RULE_NUMBER
        """
        template = self.env.get_template(NETWORK_ACL_RULE_TEMPLATE)
        next_number = {Direction.INGRESS: FIRST_RULE_NUMBER, Direction.EGRESS: FIRST_RULE_NUMBER}

        rendered = []
        for rule in rules:
            rule_number = next_number[rule.direction]
            span = rule_number_span(rule.other_network_tier)
            if rule_number + span - 1 > MAX_RULE_NUMBER:
                raise ValueError(f"Too many network ACL rules for {tier_name}")
            next_number[rule.direction] = rule_number + span
            rendered.append(template.render(rule=rule.to_dict(), rule_number=rule_number))

        return RenderedFile(f"network_acl_rules_{tier_name}.tf", '\n\n'.join(rendered))

    def render_variables(self, tiers: Sequence[NetworkTier], limit_cidr_lists: bool = False) -> RenderedFile:
        """
        Render variables.tf.

        With limit_cidr_lists (network ACL policies), CIDR list variables get
        a validation capping their length at the tier's rule_number_span().
        """
        template = self.env.get_template(VARIABLE_TEMPLATE)
        rendered = []
        for tier in tiers:
            variables = []
            for suffix, tf_type, attribute in _TIER_VARIABLES[tier.tier_type]:
                value = getattr(tier, attribute) if attribute else None
                if isinstance(value, tuple):
                    value = list(value) or None
                max_length = None
                if limit_cidr_lists and suffix in _CIDR_LIST_VARIABLES:
                    max_length = rule_number_span(tier)
                variables.append({'name': suffix, 'type': tf_type, 'value': value, 'max_length': max_length})

            rendered.append(template.render(
                network_tier_name=tier.name,
                network_tier_type=tier.tier_type.value,
                variables=variables,
            ))
        return RenderedFile('variables.tf', '\n\n'.join(rendered))


def render(result: PolicyResult, templates_dir: Optional[Union[str, Path]] = None) -> List[RenderedFile]:
    return TerraformRenderer(templates_dir).render(result)


def write_rendered_files(files: Sequence[RenderedFile], directory: Union[str, Path]) -> List[Path]:
    """
    Write rendered files into directory, replacing earlier output.

    Existing *.tf files in the directory are removed first so tiers dropped
    from the policy do not leave stale rule files behind.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    for stale in directory.glob('*.tf'):
        stale.unlink()

    written = []
    for rendered in files:
        path = directory / rendered.file_name
        path.write_text(rendered.file_contents + '\n', encoding='utf-8')
        written.append(path)

    logger.info("Wrote %d files to %s", len(written), directory)
    return written
