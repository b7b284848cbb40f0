"""
MCP Tools for Traffic Policy Expansion

This module defines the MCP tools (functions) that LLMs can call to expand
tiered traffic policies into per-tier firewall rules and to inspect the
result. Policies are YAML documents describing network tiers (security
groups, subnet groups, CIDR blocks, prefix lists) and shorthand traffic rules
between them.

Tools:
    - load_policy: Load and expand a policy from a file or inline YAML, or get summary of the loaded policy
    - query_rules: Query grouped rules by tier, direction, traffic type or other tier
    - render_policy: Render the loaded policy as Terraform files
    - lookup_traffic_type: Look up a traffic type by name, or identify a port/protocol
    - describe_cidr: Parse an IPv4 CIDR block into masks and address range
    - consolidate_ranges: Merge IPv4 address ranges and express them as CIDR blocks

Design Philosophy:
    - MCP server = Expansion layer (validate, expand, group, render)
    - LLM = Review engine (judges whether the expanded rules match intent)
    - Errors are returned as JSON so the LLM can explain them to the user
"""

import json
import logging
from typing import Any, Dict, List, Optional

from mcp.types import TextContent, Tool

from .. import settings
from ..loaders import load_policy, parse_policy
from ..net import consolidate, ipv4_in_cidr, parse_cidr, range_to_cidr
from ..policy import CATALOG, PolicyResult, expand_policy
from ..render import render, write_rendered_files

logger = logging.getLogger(__name__)


# Global expanded policy (in-memory storage)
# Once a policy is loaded, subsequent queries and renders operate on it
_result: Optional[PolicyResult] = None


def get_policy_tools() -> List[Tool]:
    """
    Get list of MCP tools available for traffic policy expansion.

    Returns:
        List[Tool]: List of MCP tool definitions

    Note:
        Tool schemas follow JSON Schema format for parameter validation
    """
    return [
        Tool(
            name="load_policy",
            description=(
                "Load a traffic policy from a YAML file path or inline YAML text and expand it into per-tier rules. "
                "Returns a summary with rule counts per owning network tier. "
                "If called without path or policy and a policy is already loaded, returns the summary without reloading. "
                "The policy flavour (security_group or network_acl) is detected from the document unless variant is given."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "Path to a YAML policy file (e.g., 'policies/prod.yml'). Either path or policy must be provided."
                    },
                    "policy": {
                        "type": "string",
                        "description": "Inline YAML policy document. Either path or policy must be provided."
                    },
                    "variant": {
                        "type": "string",
                        "enum": ["security_group", "network_acl"],
                        "description": "Policy flavour (optional - detected from the document if not specified)"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="query_rules",
            description=(
                "Query the expanded rules of the loaded policy by owning tier, direction, traffic type or the tier on the other side. "
                "Returns matching rules that meet all specified criteria. "
                "If called with no parameters, returns every grouped rule. "
                "Must call load_policy first."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "network_tier": {
                        "type": "string",
                        "description": "Owning tier name (security group or subnet group) to filter by"
                    },
                    "direction": {
                        "type": "string",
                        "enum": ["ingress", "egress"],
                        "description": "Rule direction to filter by"
                    },
                    "traffic_type": {
                        "type": "string",
                        "description": "Traffic type name to filter by (e.g., 'https', 'all_tcp', 'protocol_tcp_port_8080')"
                    },
                    "other_network_tier": {
                        "type": "string",
                        "description": "Name of the tier on the other side of the rule"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="render_policy",
            description=(
                "Render the loaded policy as Terraform: one rule file per owning tier plus variables.tf. "
                "Returns the rendered files. If output_dir is given, existing .tf files there are replaced. "
                "Must call load_policy first."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "output_dir": {
                        "type": "string",
                        "description": "Directory to write the rendered files to (optional - files are only returned if not specified)"
                    },
                    "write": {
                        "type": "boolean",
                        "description": "Write to TIERPOLICY_OUTPUT_DIR (default 'output') when output_dir is not given (default: false)"
                    },
                    "include_contents": {
                        "type": "boolean",
                        "description": "Whether to include file contents in the response (default: true)"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="lookup_traffic_type",
            description=(
                "Look up a named traffic type (e.g., 'ssh', 'postgresql'), identify the name of a port/protocol pair, "
                "or list the whole catalog when called with no parameters."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Traffic type name to look up"
                    },
                    "port": {
                        "type": "integer",
                        "description": "Port to identify (single port)"
                    },
                    "from_port": {
                        "type": "integer",
                        "description": "Start of a port range to identify"
                    },
                    "to_port": {
                        "type": "integer",
                        "description": "End of a port range to identify"
                    },
                    "protocol": {
                        "type": ["string", "integer"],
                        "description": "Protocol name or number (default: tcp)"
                    }
                },
                "required": []
            }
        ),
        Tool(
            name="describe_cidr",
            description=(
                "Parse an IPv4 CIDR block and return its prefix, subnet and wildcard masks, and first and last address. "
                "Optionally checks whether an address falls inside the block."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "cidr": {
                        "type": "string",
                        "description": "IPv4 CIDR block (e.g., '10.0.0.0/16')"
                    },
                    "ipv4": {
                        "type": "string",
                        "description": "Address to test for membership (optional)"
                    }
                },
                "required": ["cidr"]
            }
        ),
        Tool(
            name="consolidate_ranges",
            description=(
                "Merge overlapping or adjacent IPv4 address ranges or CIDR blocks and express each merged range as a CIDR block "
                "where it is exactly one aligned block."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "ranges": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "start": {"type": "string"},
                                "end": {"type": "string"}
                            },
                            "required": ["start", "end"]
                        },
                        "description": "Address ranges as {start, end} dotted quads"
                    },
                    "cidrs": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "CIDR blocks to merge along with the ranges"
                    },
                    "legacy_overlap": {
                        "type": "boolean",
                        "description": "Use the historical asymmetric overlap test (default: false)"
                    }
                },
                "required": []
            }
        )
    ]


def _json_response(data: Dict[str, Any]) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2))]


def _error(message: str) -> List[TextContent]:
    return _json_response({"error": message})


async def handle_load_policy(arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Handle load_policy tool call - loads and expands a policy, or returns summary of the loaded one.

    Args:
        arguments: Dictionary containing tool arguments:
            - path (str, optional): YAML policy file path
            - policy (str, optional): Inline YAML policy text
            - variant (str, optional): 'security_group' or 'network_acl'

    Returns:
        List[TextContent]: JSON response containing:
            - status: "success" or error information
            - message: Human-readable status message
            - summary: Expansion summary with per-tier rule counts

    Example:
        {"path": "policies/prod.yml"}
        {"policy": "network_tiers: ...", "variant": "security_group"}
        {}  # summary of the already-loaded policy
    """
    global _result

    path = arguments.get("path")
    policy = arguments.get("policy")
    variant = arguments.get("variant")

    if not path and not policy:
        if _result is None:
            return _error(
                "Either path or policy must be provided to load a policy, or a policy must already be loaded"
            )
        return _json_response({
            "status": "success",
            "message": f"Summary of loaded {_result.variant.name} policy",
            "summary": _result.get_summary(),
        })

    try:
        config = load_policy(path, variant) if path else parse_policy(policy, variant)
        _result = expand_policy(config)
        summary = _result.get_summary()

        source = path or "inline policy"
        return _json_response({
            "status": "success",
            "message": (
                f"Policy loaded from {source}: {summary['total_grouped_rules']} rules "
                f"across {len(summary['rule_groups'])} {_result.variant.name} tiers"
            ),
            "summary": summary,
        })
    except Exception as e:
        logger.warning("load_policy failed: %s", e)
        return _error(str(e))


def _matches(rule: Dict[str, Any], direction: Optional[str], traffic_type: Optional[str],
             other_network_tier: Optional[str]) -> bool:
    if direction and rule['traffic_rule_type'] != direction:
        return False
    if traffic_type and rule['traffic_type_name'] != traffic_type:
        return False
    if other_network_tier and rule['other_network_tier']['name'] != other_network_tier:
        return False
    return True


async def handle_query_rules(arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Handle query_rules tool call - filters the grouped rules of the loaded policy.

    All specified criteria must match (AND logic).

    Args:
        arguments: Dictionary containing query filters:
            - network_tier (str, optional): Owning tier name
            - direction (str, optional): 'ingress' or 'egress'
            - traffic_type (str, optional): Traffic type name
            - other_network_tier (str, optional): Tier on the other side

    Returns:
        List[TextContent]: JSON response containing:
            - matches: Number of matching rules
            - rules: Matching rule dictionaries

    Example Queries:
        Everything the web tier accepts:
        {"network_tier": "web", "direction": "ingress"}

        Who can reach the database over postgresql:
        {"network_tier": "db", "traffic_type": "postgresql"}
    """
    if _result is None:
        return _error("No policy loaded. Call load_policy first.")

    try:
        network_tier = arguments.get("network_tier")
        direction = arguments.get("direction")
        traffic_type = arguments.get("traffic_type")
        other_network_tier = arguments.get("other_network_tier")

        if network_tier and network_tier not in _result.grouped_traffic_rules:
            return _error(f"Network tier {network_tier} does not own any rule group")

        groups = _result.grouped_traffic_rules
        if network_tier:
            groups = {network_tier: groups[network_tier]}

        rules = []
        for rule_group in groups.values():
            for rule in rule_group:
                data = rule.to_dict()
                if _matches(data, direction, traffic_type, other_network_tier):
                    rules.append(data)

        return _json_response({
            "matches": len(rules),
            "rules": rules,
        })
    except Exception as e:
        return _error(str(e))


async def handle_render_policy(arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Handle render_policy tool call - renders the loaded policy as Terraform.

    Args:
        arguments: Dictionary containing tool arguments:
            - output_dir (str, optional): Directory to write files to
            - write (bool, optional): Write to the configured output directory
            - include_contents (bool, optional): Include file contents (default: true)

    Returns:
        List[TextContent]: JSON response containing:
            - files: Rendered file names (and contents)
            - written: Paths written, when output_dir is given
    """
    if _result is None:
        return _error("No policy loaded. Call load_policy first.")

    try:
        output_dir = arguments.get("output_dir")
        if not output_dir and arguments.get("write"):
            output_dir = settings.get_output_dir()
        include_contents = arguments.get("include_contents", True)

        files = render(_result)
        response_data = {
            "total": len(files),
            "files": [
                f.to_dict() if include_contents else {"file_name": f.file_name}
                for f in files
            ],
        }

        if output_dir:
            written = write_rendered_files(files, output_dir)
            response_data["written"] = [str(path) for path in written]

        return _json_response(response_data)
    except Exception as e:
        logger.warning("render_policy failed: %s", e)
        return _error(str(e))


async def handle_lookup_traffic_type(arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Handle lookup_traffic_type tool call.

    Name lookup wins when a name is given; otherwise a port or port range is
    identified; with no arguments the whole catalog is returned.

    Example:
        {"name": "ssh"}  ->  {"name": "ssh", "traffic_type": {"from_port": 22, ...}}
        {"port": 53, "protocol": "udp"}  ->  {"name": "dns_udp", ...}
    """
    try:
        name = arguments.get("name")
        if name:
            return _json_response({
                "name": name,
                "traffic_type": CATALOG.lookup_by_name(name).to_dict(),
            })

        port = arguments.get("port")
        from_port = arguments.get("from_port", port)
        to_port = arguments.get("to_port", from_port)
        if from_port is not None:
            traffic_type = CATALOG.normalize({
                "from_port": from_port,
                "to_port": to_port,
                "protocol": arguments.get("protocol"),
            })
            return _json_response({
                "name": CATALOG.identify_by_type(traffic_type),
                "traffic_type": traffic_type.to_dict(),
                "protocol_name": CATALOG.protocol_name(traffic_type.protocol),
            })

        return _json_response({
            "total": len(CATALOG),
            "traffic_types": {name: tt.to_dict() for name, tt in CATALOG},
        })
    except Exception as e:
        return _error(str(e))


async def handle_describe_cidr(arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Handle describe_cidr tool call - parses a CIDR block.

    Example Response:
        {
            "cidr": "10.0.0.0/24",
            "prefix": 24,
            "subnet_mask": "255.255.255.0",
            "start_ipv4": "10.0.0.0",
            "end_ipv4": "10.0.0.255",
            ...
        }
    """
    cidr = arguments.get("cidr")
    if not cidr:
        return _error("cidr is required")

    try:
        info = parse_cidr(cidr)
        response_data = info.to_dict()

        ipv4 = arguments.get("ipv4")
        if ipv4:
            response_data["contains"] = ipv4_in_cidr(ipv4, cidr)

        return _json_response(response_data)
    except Exception as e:
        return _error(str(e))


async def handle_consolidate_ranges(arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Handle consolidate_ranges tool call - merges ranges and CIDR blocks.

    Each merged range carries a "cidr" key when it is exactly one aligned
    CIDR block, and null otherwise.
    """
    try:
        ranges = [(r["start"], r["end"]) for r in arguments.get("ranges", [])]
        for cidr in arguments.get("cidrs", []):
            info = parse_cidr(cidr)
            ranges.append((info.start, info.end))

        if not ranges:
            return _error("At least one range or cidr must be provided")

        merged = consolidate(ranges, legacy_overlap=arguments.get("legacy_overlap", False))

        results = []
        for merged_range in merged:
            data = merged_range.to_dict()
            try:
                data["cidr"] = range_to_cidr(merged_range.start, merged_range.end)
            except ValueError:
                data["cidr"] = None
            results.append(data)

        return _json_response({
            "total": len(results),
            "ranges": results,
        })
    except Exception as e:
        return _error(str(e))


async def handle_tool_call(tool_name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """
    Route tool calls to appropriate handler functions.

    Args:
        tool_name: Name of the tool to execute (must match tool definitions)
        arguments: Dictionary of arguments for the tool call

    Returns:
        List[TextContent]: Response from the handler function, or error JSON
            for an unknown tool name
    """
    handlers = {
        "load_policy": handle_load_policy,
        "query_rules": handle_query_rules,
        "render_policy": handle_render_policy,
        "lookup_traffic_type": handle_lookup_traffic_type,
        "describe_cidr": handle_describe_cidr,
        "consolidate_ranges": handle_consolidate_ranges,
    }

    handler = handlers.get(tool_name)
    if not handler:
        return _error(f"Unknown tool: {tool_name}")

    return await handler(arguments or {})
