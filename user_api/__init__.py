"""
User management API.

This package provides a FastAPI application for user records with a
PostgreSQL-backed store and an in-memory fallback used when the database
cannot be reached at startup.
"""
