# API module exports
from vesper.api import health
from vesper.api.base import api_router

__all__ = ["health", "api_router"]
