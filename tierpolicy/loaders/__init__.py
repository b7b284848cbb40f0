"""
Policy document loading and validation.

Exports:
    load_policy - Load and validate a YAML policy file
    parse_policy - Validate YAML text or a mapping
    detect_variant - Pick the policy flavour from a document
"""

from .config_loader import detect_variant, load_policy, parse_policy, to_policy_config, validate_document

__all__ = [
    'detect_variant',
    'load_policy',
    'parse_policy',
    'to_policy_config',
    'validate_document',
]
