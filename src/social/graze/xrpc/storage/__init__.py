"""
Session Storage

This package defines the storage capability the client persists sessions
through, and the backends shipped with it.

Key Components:
- base.py: Storage protocol and helpers shared by the backends
- memory.py: In-process storage, mostly useful for tests and short scripts
- file.py: JSON file storage with optional Fernet encryption at rest
- redis_storage.py: Redis-backed storage using redis.asyncio
- database.py: PostgreSQL storage through SQLAlchemy's async interface

The client relies only on overwrite-on-save and read-your-last-write. The
persisted copy is the source of truth across process restarts; the session a
client holds in memory is a cache of it.
"""
