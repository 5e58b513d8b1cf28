from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Callable, Optional

DEFAULT_PAIRING_TTL = 90


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class PairingArtifact:
    """A pairing code issued by the messaging session, valid until expires_at."""

    code: str
    issued_at: datetime
    expires_at: datetime

    @classmethod
    def issue(
        cls, code: str, ttl: int = DEFAULT_PAIRING_TTL, now: Optional[datetime] = None
    ) -> "PairingArtifact":
        """
        Build an artifact for a freshly issued code.

        Args:
            code: Opaque pairing code from the provider
            ttl: Validity window in seconds
            now: Issue timestamp (defaults to current UTC time)

        Returns:
            PairingArtifact with expires_at = issued_at + ttl
        """
        issued_at = now or utcnow()
        return cls(code=code, issued_at=issued_at, expires_at=issued_at + timedelta(seconds=ttl))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at


class PairingCodeCache:
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        """
        Initialize pairing code cache.

        Args:
            clock: Callable returning the current UTC time
        """
        self._clock = clock
        self._artifact: Optional[PairingArtifact] = None

    def set(self, artifact: PairingArtifact) -> None:
        """Replace the current artifact."""
        self._artifact = artifact

    def get(self) -> Optional[PairingArtifact]:
        """
        Get the current artifact.

        Returns:
            The artifact, or None if absent or past its expiry
        """
        artifact = self._artifact
        if artifact is None or artifact.is_expired(self._clock()):
            return None
        return artifact

    def clear(self) -> None:
        self._artifact = None

    def is_stale(self) -> bool:
        """True when an artifact is held but has already expired."""
        return self._artifact is not None and self._artifact.is_expired(self._clock())
