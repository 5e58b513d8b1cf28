"""Tests for the pairing code cache."""

from datetime import timedelta

from wagateway.modules.pairing import PairingArtifact, PairingCodeCache


def test_issue_sets_expiry(clock):
    artifact = PairingArtifact.issue("ABC", ttl=90, now=clock.now)

    assert artifact.issued_at == clock.now
    assert artifact.expires_at == clock.now + timedelta(seconds=90)


def test_artifact_expires_at_deadline(clock):
    """The artifact is no longer valid from expires_at onwards."""
    artifact = PairingArtifact.issue("ABC", ttl=90, now=clock.now)

    assert not artifact.is_expired(clock.now + timedelta(seconds=89))
    assert artifact.is_expired(clock.now + timedelta(seconds=90))


def test_empty_cache(clock):
    cache = PairingCodeCache(clock)

    assert cache.get() is None
    assert not cache.is_stale()


def test_get_returns_valid_artifact(clock):
    cache = PairingCodeCache(clock)
    artifact = PairingArtifact.issue("ABC", now=clock.now)

    cache.set(artifact)
    clock.advance(60)

    assert cache.get() == artifact
    assert not cache.is_stale()


def test_expired_artifact_is_hidden(clock):
    """Expiry is evaluated lazily on read."""
    cache = PairingCodeCache(clock)
    cache.set(PairingArtifact.issue("ABC", now=clock.now))

    clock.advance(91)

    assert cache.get() is None
    assert cache.is_stale()


def test_set_replaces_previous(clock):
    cache = PairingCodeCache(clock)
    cache.set(PairingArtifact.issue("OLD", now=clock.now))
    clock.advance(30)
    cache.set(PairingArtifact.issue("NEW", now=clock.now))

    clock.advance(70)

    assert cache.get().code == "NEW"


def test_clear(clock):
    cache = PairingCodeCache(clock)
    cache.set(PairingArtifact.issue("ABC", now=clock.now))

    cache.clear()

    assert cache.get() is None
    assert not cache.is_stale()
