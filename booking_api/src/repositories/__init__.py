"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each aggregate. Soft-deleted
rows are hidden by the session interceptors; tenant filtering is explicit in
every listing query.
"""
