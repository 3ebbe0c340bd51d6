"""
Database Models

SQLAlchemy models backing the database session storage.

Key Models:
- base.py: Declarative base with the shared string type annotations
- stored_session.py: One persisted session per storage key

The models use SQLAlchemy's async interface and PostgreSQL upserts, so saving
a session is a single statement that overwrites any previous row for the key.
"""
