"""Dependency graph validation backed by NetworkX."""
