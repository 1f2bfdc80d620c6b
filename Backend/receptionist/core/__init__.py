"""
Core module - configuration, database, and response formatting.
"""
from .config import Settings, get_settings
from .db import AsyncSessionLocal, Base, engine, get_session, init_models
from .responses import (
    ErrorDetail,
    ErrorCodes,
    success_response,
    error_response,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "get_session",
    "init_models",
    "Base",
    "engine",
    "AsyncSessionLocal",
    # Responses
    "ErrorDetail",
    "ErrorCodes",
    "success_response",
    "error_response",
]
