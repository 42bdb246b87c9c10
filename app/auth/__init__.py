"""Authentication module for the VidTube API."""

from app.auth.dependencies import CallerContext, get_caller
from app.auth.tokens import create_access_token

__all__ = ["CallerContext", "get_caller", "create_access_token"]
