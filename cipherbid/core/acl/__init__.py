"""
Cipherbid Access Control Module.

Tracks capability grants on ciphertext handles.
"""

from cipherbid.core.acl.grant_manager import CapabilityGrantManager, GrantBatch

__all__ = ["CapabilityGrantManager", "GrantBatch"]
