"""End-to-end scenarios for the ASGI record/replay integration.

Each scenario drives a FastAPI application through ASGIReplayMiddleware and
checks one aspect of dispatch: record/replay, route overrides, expiration
and timing, and concurrency.
"""
