"""Roles: named bundles of permission codes."""
