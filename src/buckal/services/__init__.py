"""Service layer — business logic between the CLI and infrastructure.

Every public service method returns a ServiceResult.
"""
