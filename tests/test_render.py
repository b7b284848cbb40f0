"""
Unit Tests for the Terraform Renderer
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from tierpolicy.loaders import load_policy, parse_policy
from tierpolicy.policy import expand_policy
from tierpolicy.render import RenderedFile, TerraformRenderer, render, write_rendered_files
from tierpolicy.render.terraform import rule_number_span


FIXTURES = Path(__file__).parent / "fixtures"


def _files(fixture: str):
    result = expand_policy(load_policy(FIXTURES / fixture))
    return {f.file_name: f.file_contents for f in render(result)}


def test_security_group_files():
    """
    Test rendering of a security group policy.

    Verifies:
        - One rule file per security group plus variables.tf
        - Peers are referenced through tier variables
        - Self rules use self = true
        - User descriptions are rendered as HCL strings
    """
    files = _files("security_group_policy.yml")

    assert list(files) == [
        'security_group_rules_web.tf',
        'security_group_rules_app.tf',
        'security_group_rules_db.tf',
        'variables.tf',
    ]

    web = files['security_group_rules_web.tf']
    assert 'resource "aws_security_group_rule" "allow_http_ingress_from_internet_to_web" {' in web
    assert 'security_group_id = var.web_security_group_id' in web
    assert 'cidr_blocks       = var.internet_cidr_blocks' in web
    assert 'ipv6_cidr_blocks  = var.internet_v6_ipv6_cidr_blocks' in web
    assert 'self              = true' in web
    assert 'protocol          = "-1"' in web
    assert 'description       = "Administrative SSH from the office"' in web

    app = files['security_group_rules_app.tf']
    assert 'prefix_list_ids   = var.s3_prefix_list_ids' in app
    assert 'source_security_group_id = var.web_security_group_id' in app
    assert 'self              = true' not in app

    print("✓ Security group rendering test passed")


def test_variables_file():
    """
    Test the companion variables file.

    Verifies:
        - Each tier declares its attribute variables
        - Declared values become defaults and missing ones null
    """
    variables = _files("security_group_policy.yml")['variables.tf']

    assert 'variable "web_security_group_id" {' in variables
    assert 'default = "sg-0a1b2c3d4e5f60001"' in variables
    assert 'variable "app_security_group_id" {' in variables
    assert 'default = null' in variables
    assert 'variable "office_cidr_blocks" {' in variables
    assert 'default = ["198.51.100.0/24", "203.0.113.0/24"]' in variables
    assert 'variable "s3_prefix_list_ids" {' in variables
    assert 'type    = list(string)' in variables

    print("✓ Variables file test passed")


def test_network_acl_files():
    """
    Test rendering of a network ACL policy.

    Verifies:
        - Rule numbers start at 100 and step by 10 per direction
        - Rules count over the peer's CIDR list
        - IPv6 peers use the ipv6 CIDR list
    """
    files = _files("network_acl_policy.yml")

    assert 'network_acl_rules_public.tf' in files
    assert 'network_acl_rules_db.tf' in files

    db = files['network_acl_rules_db.tf']
    assert 'network_acl_id  = var.db_network_acl_id' in db
    assert 'rule_number     = 100 + count.index' in db
    assert 'count           = length(var.app_cidr_blocks)' in db
    assert 'count           = length(var.app_ipv6_cidr_blocks)' in db
    assert 'ipv6_cidr_block = var.app_ipv6_cidr_blocks[count.index]' in db
    assert 'egress          = false' in db
    assert 'egress          = true' in db
    assert 'from_port       = 5432' in db

    numbers = [
        line.split('=')[1].split('+')[0].strip()
        for line in files['network_acl_rules_public.tf'].splitlines()
        if line.strip().startswith('rule_number')
    ]
    assert numbers[:3] == ['100', '110', '120']

    variables = files['variables.tf']
    assert 'variable "app_subnet_ids" {' in variables
    assert 'variable "app_ipv6_cidr_blocks" {' in variables
    assert 'variable "internet_cidr_blocks" {' in variables

    print("✓ Network ACL rendering test passed")


PARTNERS_POLICY = {
    'allow_all_to_self': False,
    'allow_ephemeral': False,
    'network_tiers': {
        'subnet_groups': [
            {'name': 'app', 'network_acl_id': 'acl-0e1f2a3b', 'subnet_ids': ['subnet-0003']},
        ],
        'cidr_blocks': [
            {'name': 'partners', 'cidr_blocks': [f'192.0.2.{i * 16}/28' for i in range(12)]},
        ],
    },
    'traffic_rules': [
        {'source': 'partners', 'destination': 'app', 'traffic_type': ['ssh', 'https']},
    ],
}


def test_network_acl_rule_numbers_cover_every_cidr():
    """
    Test rule numbering against a peer with more CIDRs than the stride.

    Verifies:
        - A 12-CIDR peer reserves 12 rule numbers per rule
        - No two rule/CIDR combinations share a rule number
        - CIDR list variables are capped at their reserved span
    """
    result = expand_policy(parse_policy(PARTNERS_POLICY))
    renderer = TerraformRenderer()

    rules = result.grouped_traffic_rules['app']
    assert [r.traffic_type_name for r in rules] == ['ssh', 'https']
    assert rule_number_span(rules[0].other_network_tier) == 12

    app = renderer.render_network_acl_rules('app', rules).file_contents
    starts = [
        int(line.split('=')[1].split('+')[0])
        for line in app.splitlines()
        if line.strip().startswith('rule_number')
    ]
    assert starts == [100, 112]

    used = [start + index for start in starts for index in range(12)]
    assert len(used) == len(set(used))

    variables = render(result)[-1].file_contents
    assert 'length(var.partners_cidr_blocks == null ? [] : var.partners_cidr_blocks) <= 12' in variables
    assert 'length(var.app_cidr_blocks == null ? [] : var.app_cidr_blocks) <= 10' in variables
    assert 'length(var.app_ipv6_cidr_blocks == null ? [] : var.app_ipv6_cidr_blocks) <= 10' in variables

    print("✓ Network ACL rule number span test passed")


def test_network_acl_rule_numbers_stop_at_the_limit(monkeypatch):
    """
    Test that the last rule's whole span must fit below MAX_RULE_NUMBER.
    """
    result = expand_policy(parse_policy(PARTNERS_POLICY))
    rules = result.grouped_traffic_rules['app']
    renderer = TerraformRenderer()

    # The second rule would start at 112 and end at 123
    monkeypatch.setattr('tierpolicy.render.terraform.MAX_RULE_NUMBER', 123)
    assert 'rule_number     = 112 + count.index' in renderer.render_network_acl_rules('app', rules).file_contents

    monkeypatch.setattr('tierpolicy.render.terraform.MAX_RULE_NUMBER', 122)
    with pytest.raises(ValueError, match='Too many network ACL rules for app'):
        renderer.render_network_acl_rules('app', rules)

    print("✓ Network ACL rule number limit test passed")


def test_custom_templates_dir(tmp_path, monkeypatch):
    """
    Test overriding the bundled templates through the environment.
    """
    (tmp_path / 'aws_security_group_rule.tf.jinja2').write_text('# {{ rule.traffic_rule_name }}')
    (tmp_path / 'aws_network_acl_rule.tf.jinja2').write_text('# {{ rule_number }}')
    (tmp_path / 'variable.tf.jinja2').write_text('# {{ network_tier_name }}')
    monkeypatch.setenv('TIERPOLICY_TEMPLATES_DIR', str(tmp_path))

    renderer = TerraformRenderer()
    assert renderer.templates_dir == tmp_path

    result = expand_policy(load_policy(FIXTURES / "security_group_policy.yml"))
    files = {f.file_name: f.file_contents for f in renderer.render(result)}
    assert files['security_group_rules_db.tf'].startswith('# allow_ssh_ingress_from_office_to_db')
    assert files['variables.tf'].splitlines()[0] == '# web'

    print("✓ Custom templates test passed")


def test_write_rendered_files_replaces_stale_output(tmp_path):
    """
    Test writing rendered files.

    Verifies:
        - Existing .tf files are removed first
        - Other files are left alone
        - Each file ends with a newline
    """
    (tmp_path / 'security_group_rules_old.tf').write_text('stale')
    (tmp_path / 'README.md').write_text('keep')

    written = write_rendered_files([RenderedFile('variables.tf', 'variable "x" {}')], tmp_path)

    assert written == [tmp_path / 'variables.tf']
    assert not (tmp_path / 'security_group_rules_old.tf').exists()
    assert (tmp_path / 'README.md').read_text() == 'keep'
    assert (tmp_path / 'variables.tf').read_text() == 'variable "x" {}\n'

    print("✓ Write rendered files test passed")


def test_missing_template_fails(tmp_path):
    """
    Test that a templates directory without the rule template fails loudly.
    """
    from jinja2 import TemplateNotFound

    result = expand_policy(load_policy(FIXTURES / "security_group_policy.yml"))
    with pytest.raises(TemplateNotFound):
        render(result, templates_dir=tmp_path)

    print("✓ Missing template test passed")
