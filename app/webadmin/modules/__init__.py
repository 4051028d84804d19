"""
Feature modules live under this package.

Each module owns its models, service layer and JSON blueprint (``admin.py``),
while reusing platform primitives (auth, RBAC, audit, query parsing, DB session).
"""
