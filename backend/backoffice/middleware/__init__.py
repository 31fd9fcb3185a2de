"""
HTTP middleware for request tracing, API versioning and security headers.
"""
