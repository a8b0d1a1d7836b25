"""
Feature modules live under this package.

Each module owns its views, models and data-access functions, and reuses the
platform pieces (DB session, identity gate, request helpers).
"""
