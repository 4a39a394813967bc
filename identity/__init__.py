"""Identity verification for authenticated API callers."""
from .verifier import Caller, IdentityVerifier, JwtIdentityVerifier, create_token

__all__ = ["Caller", "IdentityVerifier", "JwtIdentityVerifier", "create_token"]
