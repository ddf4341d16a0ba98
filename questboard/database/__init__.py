"""Persistence layer (SQLAlchemy ORM schema)."""
