"""Cryptographic primitives: token encryption at rest and GitHub secret sealing."""

from .token_vault import TokenVault, get_token_vault
from .sealer import seal

__all__ = [
    "TokenVault",
    "get_token_vault",
    "seal",
]
