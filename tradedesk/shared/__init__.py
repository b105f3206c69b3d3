"""
Shared module package.

Contains cross-cutting concerns used across the API:
- Error handling and mapping
- Security middleware and rate limiting
- Logging configuration and request logging
"""
