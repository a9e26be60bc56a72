# API module - HTTP adapter for the review workflow
from .endpoints import router

__all__ = ["router"]
