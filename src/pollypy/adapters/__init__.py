"""Transport integrations for pollypy.

- asgi.py: records and replays the responses of an ASGI application
  (FastAPI, Starlette)

Each integration subclasses ``pollypy.core.adapter.Adapter`` and converts
between its transport's request/response objects and pollypy's.
"""

from pollypy.adapters.asgi import ASGIAdapter, ASGIReplayMiddleware

__all__ = ["ASGIAdapter", "ASGIReplayMiddleware"]
