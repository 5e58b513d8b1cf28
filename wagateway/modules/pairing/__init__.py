"""
Pairing Module - Black Box Interface

Purpose: Hold the most recent pairing code and its expiry
Interface: PairingCodeCache.set(), get(), clear(), is_stale()
Hidden: Lazy expiry, clock handling

Pure data holder; callers provide their own serialization.
"""

from .cache import PairingArtifact, PairingCodeCache

__all__ = ["PairingArtifact", "PairingCodeCache"]
