"""
FastAPI dependencies for authentication, RBAC and organization context.
"""
