"""
Shared utilities for the Storefront Catalog core.

This package aggregates common building blocks consumed by the catalog
components:

- config: Configuration via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses

Do not import from service_* packages into shared/.
"""
