import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Set

from ..pairing import PairingArtifact, PairingCodeCache
from ..pairing.cache import utcnow
from ..provider import ProviderEvent, ProviderEventType, ProviderStartError, SessionProvider
from .errors import AlreadyConnected, DisconnectFailed, NotConnected, PairingTimeout, SendFailed

logger = logging.getLogger(__name__)

RECIPIENT_SUFFIX = "@c.us"


class SessionState(str, Enum):
    """State of the WhatsApp session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    EXPIRED = "expired"
    ERROR = "error"


@dataclass(frozen=True)
class SessionStatus:
    """Snapshot of the session as seen by callers."""

    state: SessionState
    last_update: datetime
    error: Optional[str] = None
    artifact: Optional[PairingArtifact] = None

    @property
    def connected(self) -> bool:
        return self.state == SessionState.CONNECTED

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "lastUpdate": self.last_update.isoformat(),
            "error": self.error,
            "qrcode": self.artifact.code if self.artifact else None,
            "expiresAt": self.artifact.expires_at.isoformat() if self.artifact else None,
        }


def normalize_recipient(recipient: str, suffix: str = RECIPIENT_SUFFIX) -> str:
    """Convert a phone number into a WhatsApp chat id ("5511999999999" -> "5511999999999@c.us")."""
    if suffix in recipient:
        return recipient
    return f"{recipient}{suffix}"


def _retrieve(future: asyncio.Future) -> None:
    # Mark the outcome as retrieved even when every waiter has gone away
    if not future.cancelled():
        future.exception()


class SessionLifecycleManager:
    """
    Owns the single WhatsApp session of this process.

    All mutation of state, the cached pairing code and the in-flight pairing
    request happens under one asyncio.Lock. Provider calls are never awaited
    while the lock is held, so a provider may deliver events from inside
    start() or destroy().
    """

    def __init__(
        self,
        provider: SessionProvider,
        pairing_timeout: float = 30,
        pairing_ttl: int = 90,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize lifecycle manager.

        Args:
            provider: Session provider to direct
            pairing_timeout: Seconds to wait for a QR code after requesting one
            pairing_ttl: Seconds a QR code stays valid after it is issued
            clock: Callable returning the current UTC time
        """
        self.provider = provider
        self.pairing_timeout = pairing_timeout
        self.pairing_ttl = pairing_ttl

        self._clock = clock
        self._cache = PairingCodeCache(clock)
        self._lock = asyncio.Lock()

        self._state = SessionState.DISCONNECTED
        self._error: Optional[str] = None
        self._last_update = clock()

        self._pending: Optional[asyncio.Future] = None
        self._pending_timer: Optional[asyncio.Task] = None
        self._tearing_down = False
        self._watchers: Set[asyncio.Queue] = set()

        self._unsubscribe = provider.subscribe(self.handle_event)

    # Queries

    def get_status(self) -> SessionStatus:
        """
        Get the current session status.

        Never blocks and never fails. A QR code that expired without being
        scanned, with no new request in flight, is reported as EXPIRED.
        """
        state = self._state
        if state == SessionState.CONNECTING and self._pending is None and self._cache.is_stale():
            state = SessionState.EXPIRED

        return SessionStatus(
            state=state,
            last_update=self._last_update,
            error=self._error,
            artifact=self._cache.get(),
        )

    # Commands

    async def request_pairing_code(self) -> PairingArtifact:
        """
        Get a QR code for pairing, starting the session if needed.

        Returns:
            The cached artifact if still valid, otherwise the next one issued

        Raises:
            AlreadyConnected: Session is connected (no provider call is made)
            PairingTimeout: No QR code was issued within pairing_timeout
            ProviderStartError: The session could not be started

        Logic:
        1. Return the cached QR code while it is valid
        2. Join the in-flight request if there is one
        3. Otherwise open a request and ask the provider for a fresh handshake
        """
        async with self._lock:
            if self._state == SessionState.CONNECTED:
                raise AlreadyConnected()

            artifact = self._cache.get()
            if artifact is not None:
                return artifact

            request = self._pending
            needs_start = request is None
            if needs_start:
                request = self._open_request()
                # Also clears a previous ERROR
                self._commit(SessionState.CONNECTING)

        if needs_start:
            await self._start_session(request)

        # Shielded: a caller going away must not cancel the shared request
        return await asyncio.shield(request)

    async def disconnect(self) -> None:
        """
        Tear down a connected session.

        Raises:
            NotConnected: Session is not connected
            DisconnectFailed: Teardown failed (the session is still marked disconnected)
        """
        async with self._lock:
            if self._state != SessionState.CONNECTED or self._tearing_down:
                raise NotConnected()
            self._tearing_down = True

        failure: Optional[Exception] = None
        try:
            await self.provider.destroy()
        except Exception as e:
            failure = e
            logger.error(f"Failed to destroy WhatsApp session: {e}")
        finally:
            async with self._lock:
                self._tearing_down = False
                # A disconnected event may already have moved the state on
                if self._state == SessionState.CONNECTED:
                    self._cache.clear()
                    self._commit(SessionState.DISCONNECTED)

        if failure is not None:
            raise DisconnectFailed(detail=str(failure)) from failure

        logger.info("WhatsApp session disconnected on request")

    async def send_message(self, recipient: str, body: str) -> None:
        """
        Send a text message through the connected session.

        Args:
            recipient: Phone number or chat id
            body: Message text

        Raises:
            NotConnected: Session is not connected (no provider call is made)
            SendFailed: Provider failed to send; session state is unchanged
        """
        if self._state != SessionState.CONNECTED or self._tearing_down:
            raise NotConnected()

        address = normalize_recipient(recipient)
        try:
            await self.provider.send(address, body)
        except Exception as e:
            logger.error(f"Failed to send message to {address}: {e}")
            raise SendFailed(detail=str(e)) from e

        logger.info(f"Message sent to {address}")

    async def sync(self) -> None:
        """
        Reconcile with the provider's own view of the connection.

        Run at startup, to adopt a session restored from saved credentials, and
        after the provider's event stream reconnects, since ready and
        disconnected events may have been missed meanwhile.
        """
        try:
            connected = await self.provider.is_connected()
        except Exception as e:
            logger.warning(f"Could not query WhatsApp session state: {e}")
            return

        async with self._lock:
            if connected and self._state == SessionState.DISCONNECTED:
                logger.info("WhatsApp session already authenticated")
                self._commit(SessionState.CONNECTED)
            elif not connected and self._state == SessionState.CONNECTED and not self._tearing_down:
                logger.warning("WhatsApp session was lost while events were unavailable")
                self._cache.clear()
                self._commit(SessionState.DISCONNECTED)

    async def close(self) -> None:
        """Detach from the provider and abandon any in-flight request."""
        self._unsubscribe()
        async with self._lock:
            request = self._pending
            if request is not None:
                self._settle(request)
                request.cancel()

    # Event ingestion

    async def handle_event(self, event: ProviderEvent) -> None:
        """Apply a lifecycle event from the provider."""
        async with self._lock:
            if event.type == ProviderEventType.QR:
                artifact = PairingArtifact.issue(event.code, self.pairing_ttl, now=self._clock())
                self._cache.set(artifact)
                self._commit(SessionState.CONNECTING)
                logger.info(f"QR code issued, valid until {artifact.expires_at.isoformat()}")
                if self._pending is not None:
                    self._settle(self._pending, result=artifact)

            elif event.type == ProviderEventType.READY:
                self._cache.clear()
                self._commit(SessionState.CONNECTED)
                logger.info("WhatsApp session is ready")
                if self._pending is not None:
                    self._settle(self._pending, error=AlreadyConnected())

            elif event.type == ProviderEventType.AUTH_FAILURE:
                reason = event.reason or "authentication failure"
                self._cache.clear()
                self._commit(SessionState.ERROR, error=reason)
                logger.error(f"WhatsApp authentication failed: {reason}")
                if self._pending is not None:
                    self._settle(
                        self._pending, error=ProviderStartError(f"Authentication failed: {reason}")
                    )

            elif event.type == ProviderEventType.DISCONNECTED:
                self._cache.clear()
                self._commit(SessionState.DISCONNECTED)
                logger.info(f"WhatsApp session disconnected: {event.reason or 'unknown reason'}")

    # Watchers

    def watch(self, maxsize: int = 100) -> asyncio.Queue:
        """
        Subscribe to status snapshots.

        Returns:
            Queue receiving a SessionStatus after every committed transition
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._watchers.add(queue)
        return queue

    def unwatch(self, queue: asyncio.Queue) -> None:
        self._watchers.discard(queue)

    # Internals (lock must be held)

    def _commit(self, state: SessionState, error: Optional[str] = None) -> None:
        self._state = state
        self._error = error if state == SessionState.ERROR else None
        self._last_update = self._clock()

        status = self.get_status()
        for queue in list(self._watchers):
            if queue.full():
                # Slow watcher: drop its oldest snapshot
                queue.get_nowait()
            queue.put_nowait(status)

    def _open_request(self) -> asyncio.Future:
        request = asyncio.get_running_loop().create_future()
        request.add_done_callback(_retrieve)
        self._pending = request
        self._pending_timer = asyncio.create_task(self._expire_request(request))
        return request

    def _settle(
        self,
        request: asyncio.Future,
        result: Optional[PairingArtifact] = None,
        error: Optional[Exception] = None,
    ) -> None:
        if self._pending is request:
            self._pending = None
            timer, self._pending_timer = self._pending_timer, None
            if timer is not None and timer is not asyncio.current_task():
                timer.cancel()

        if request.done():
            return
        if error is not None:
            request.set_exception(error)
        elif result is not None:
            request.set_result(result)

    async def _expire_request(self, request: asyncio.Future) -> None:
        await asyncio.sleep(self.pairing_timeout)

        async with self._lock:
            if request.done():
                return

            logger.warning(f"No QR code issued within {self.pairing_timeout}s")
            self._settle(request, error=PairingTimeout(self.pairing_timeout))
            if self._state == SessionState.CONNECTING and self._cache.get() is None:
                self._commit(SessionState.DISCONNECTED)

    async def _start_session(self, request: asyncio.Future) -> None:
        try:
            await self.provider.start()
            logger.info("WhatsApp session start requested")
            return
        except ProviderStartError as e:
            error = e
        except Exception as e:
            error = ProviderStartError(str(e))
            error.__cause__ = e

        logger.error(f"Failed to start WhatsApp session: {error}")
        async with self._lock:
            if request.done():
                return
            self._settle(request, error=error)
            if self._state == SessionState.CONNECTING:
                self._commit(SessionState.DISCONNECTED)
