"""
HTTP API for the health vault.

- vault.py: registry, records, permissions, emergency policy, audit log
"""

from .vault import bp as vault_bp

__all__ = ["vault_bp"]
