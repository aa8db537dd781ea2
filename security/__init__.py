"""
Security Module
===============

Authentication for the gateway's HTTP surface.
"""

from security.auth import API_KEY_HEADER, APIKeyAuth, verify_api_key

__all__ = [
    "API_KEY_HEADER",
    "APIKeyAuth",
    "verify_api_key",
]
