"""
MCP Tool Definitions for Traffic Policy Expansion

This package contains the MCP tool definitions that let LLMs load tiered
traffic policies, inspect the expanded per-tier rules and render them.

Tools are defined in policy_tools.py and handle:
    - Loading and expanding policies (security group and network ACL flavours)
    - Querying grouped rules by tier, direction and traffic type
    - Rendering Terraform for the loaded policy
    - Traffic type and IPv4 CIDR lookups
"""

from .policy_tools import get_policy_tools, handle_tool_call

__all__ = ['get_policy_tools', 'handle_tool_call']
