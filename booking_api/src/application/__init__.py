"""
Application layer: commands, queries and their handlers.

Every use case is a request object dispatched through src.application.mediator,
which wraps the handler in the pipeline behaviors defined in
src.application.behaviors (validation, tenant stamping, logging, timing,
caching and cache invalidation).
"""
