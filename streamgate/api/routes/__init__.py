"""
API Routes module.

Contains all API endpoint routers.
"""

from streamgate.api.routes import chat, health, models, streams

__all__ = ["chat", "health", "models", "streams"]
