"""
Feature modules live under this package.

Each module owns its models, service and admin API blueprint, while reusing
platform primitives (auth, RBAC, audit, storage, cache, DB session).
"""
