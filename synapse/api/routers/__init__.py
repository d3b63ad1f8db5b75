"""API routers for Synapse."""

from synapse.api.routers import graph_router, session_router

__all__ = [
    "graph_router",
    "session_router",
]
