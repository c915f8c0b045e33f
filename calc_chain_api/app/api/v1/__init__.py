"""
Version 1 of the API.

Bundles the auth and calculation endpoints.  Breaking changes should
be introduced in a new version subpackage.
"""
