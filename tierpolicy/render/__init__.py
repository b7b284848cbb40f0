"""
Terraform rendering of expanded policies.

Exports:
    TerraformRenderer - Jinja2-backed renderer
    RenderedFile - One rendered output file
    render - Render a PolicyResult with the default templates
    write_rendered_files - Write rendered files to a directory
"""

from .terraform import RenderedFile, TerraformRenderer, render, write_rendered_files

__all__ = [
    'RenderedFile',
    'TerraformRenderer',
    'render',
    'write_rendered_files',
]
