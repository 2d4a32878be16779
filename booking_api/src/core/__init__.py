"""
Core application utilities shared by every layer.

This package provides:
- Application-level settings (separate from DB settings)
- Structured logging with correlation and tenant ids
- Error types translated to HTTP responses
- Password hashing and token helpers
- FastAPI dependencies (request context resolution, roles, mediator)
"""
