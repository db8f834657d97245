"""Infrastructure layer — database, filesystem, templates, vault.

This layer depends on stdlib and third-party libs (SQLAlchemy, Jinja2).
It must never import from services, commands, or output.
The service layer bridges between domain functions and infrastructure.
"""
