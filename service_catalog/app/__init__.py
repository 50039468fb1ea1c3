"""
Catalog core for the storefront.

Two independent components used by the storefront's request handlers:

- caching: Expiring metadata cache for the external metadata provider.
- codes: Validation engine for promo and commission codes.

The components share no state and never call each other.
"""
