"""Token adapters - Signed bearer token implementations."""

from .jwt import JwtTokenService

__all__ = ["JwtTokenService"]
