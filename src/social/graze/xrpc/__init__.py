"""
XRPC - Authenticated AT Protocol client

This package implements a client for AT Protocol services reachable over XRPC, the
RPC-over-HTTP convention where each remote procedure is identified by an NSID and
invoked with GET or POST against /xrpc/<nsid>. It manages the lifecycle of an
app password session and dispatches typed calls, transparently recovering from
expired access tokens.

Key Components:
- session.py: Session model holding the account identity and token pair
- lexicon.py: NSIDs and wire models for the procedures the client speaks
- errors.py: Exception taxonomy shared by every layer
- storage: Pluggable persistence for sessions (memory, file, redis, database)
- client: Login, client construction, token refresh and request dispatch
- config.py / factory.py: Settings and builders for storage and HTTP sessions

Session Flow:
1. login() exchanges an identifier and password for a session and persists it
2. Client.open() loads the persisted session from the same storage
3. Every call carries the access token as a bearer credential
4. An ExpiredToken response triggers exactly one refresh and one retry
5. A refreshed session is persisted before it replaces the in-memory one

The client performs no internal locking. Serialize calls on one client
instance, or open one client per task over a shared storage backend.
"""
