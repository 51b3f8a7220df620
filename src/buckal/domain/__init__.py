"""Domain layer — cargo graph types, build rules, cells and labels.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
