"""
XRPC Client

This package talks to the XRPC service on behalf of an authenticated account.

Key Components:
- auth.py: login, exchanging an identifier and password for a persisted session
- client.py: Client construction, token refresh, request dispatch and record reads
- chain.py: Middleware chain around aiohttp requests, including the expired-token retry

A dispatched call is at most two requests to the target procedure plus one
refresh request. An ExpiredToken response to the retried request is surfaced
as an ApiException rather than triggering another refresh.
"""
