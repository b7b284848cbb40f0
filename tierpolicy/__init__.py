"""
Tiered Traffic Policy Expansion

Expands shorthand traffic policies between network tiers into concrete
per-tier firewall rules (AWS security group rules or network ACL rules) and
renders them as Terraform.

Package Structure:
    net/      - IPv4 CIDR arithmetic
    policy/   - Traffic type catalog, tiers, expansion engine
    loaders/  - YAML policy documents and their schemas
    render/   - Terraform templates and renderer
    tools/    - MCP tool definitions and handlers
"""

__version__ = "0.1.0"
