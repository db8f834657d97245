"""Domain layer — note parsing, identifiers, links, tags and resolution.

This layer depends only on stdlib and ruamel.yaml.
It must never import from services, infrastructure, commands, or config.
"""
