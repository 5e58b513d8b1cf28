import asyncio
import json
import logging
import uuid
from datetime import UTC, datetime
from typing import Awaitable, Callable, List, Optional

from redis.exceptions import ConnectionError as RedisConnectionError

from .interfaces import (
    EventHandler,
    ProviderEvent,
    ProviderSendError,
    ProviderStartError,
    ProviderTeardownError,
)

logger = logging.getLogger(__name__)

# Backoff shared by reply polling and event-channel resubscription
POLL_INITIAL_INTERVAL = 0.05
POLL_BACKOFF = 1.5
POLL_MAX_INTERVAL = 1.0
RECONNECT_MAX_INTERVAL = 5.0


class RedisSessionProvider:
    """
    Session provider backed by an external WhatsApp Web worker.

    The worker owns the browser session. This adapter talks to it through Redis:
    commands are published on "{prefix}:commands", replies are stored at
    "{prefix}:result:{command_id}", lifecycle events arrive on "{prefix}:events"
    and the worker keeps "{prefix}:connected" set while authenticated.

    A start command sent while the worker's browser is already running asks it
    for a fresh QR code rather than a second browser.
    """

    def __init__(
        self,
        redis_client,
        prefix: str = "whatsapp",
        command_timeout: float = 30,
        on_reconnect: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        """
        Initialize Redis session provider.

        Args:
            redis_client: Async Redis client
            prefix: Key and channel prefix shared with the worker
            command_timeout: Max seconds to wait for a worker reply
            on_reconnect: Awaited after the event channel is resubscribed following a failure
        """
        self.redis = redis_client
        self.prefix = prefix
        self.command_timeout = command_timeout
        self._handlers: List[EventHandler] = []
        self.on_reconnect = on_reconnect
        self._listener: Optional[asyncio.Task] = None

    @property
    def commands_channel(self) -> str:
        return f"{self.prefix}:commands"

    @property
    def events_channel(self) -> str:
        return f"{self.prefix}:events"

    @property
    def connected_key(self) -> str:
        return f"{self.prefix}:connected"

    def result_key(self, command_id: str) -> str:
        return f"{self.prefix}:result:{command_id}"

    async def start(self) -> None:
        try:
            receivers = await self._publish_command("start")
        except Exception as e:
            raise ProviderStartError(f"Failed to publish start command: {e}") from e

        # PUBLISH returns the number of subscribers that received the message
        if not receivers:
            raise ProviderStartError("No WhatsApp session worker is listening")

    async def is_connected(self) -> bool:
        return await self.redis.exists(self.connected_key) > 0

    async def send(self, address: str, body: str) -> None:
        try:
            command_id = str(uuid.uuid4())
            await self._publish_command("send", command_id=command_id, to=address, body=body)
            result = await self.wait_for_result(command_id)
        except Exception as e:
            raise ProviderSendError(str(e)) from e

        if result is None:
            raise ProviderSendError(f"No reply from session worker within {self.command_timeout}s")
        if not result.get("success"):
            raise ProviderSendError(result.get("error") or "Message rejected by session worker")

    async def destroy(self) -> None:
        try:
            command_id = str(uuid.uuid4())
            await self._publish_command("destroy", command_id=command_id)
            result = await self.wait_for_result(command_id)
        except Exception as e:
            raise ProviderTeardownError(str(e)) from e

        if result is None:
            raise ProviderTeardownError(
                f"No reply from session worker within {self.command_timeout}s"
            )
        if not result.get("success"):
            raise ProviderTeardownError(result.get("error") or "Session teardown failed")

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def wait_for_result(self, command_id: str) -> Optional[dict]:
        """
        Wait for the worker's reply to a command.

        Args:
            command_id: Command identifier

        Returns:
            Reply dict or None if timeout

        Logic:
        1. Check if reply already exists
        2. If not, poll with exponential backoff
        3. Delete the reply once read
        """
        result_key = self.result_key(command_id)

        elapsed = 0.0
        poll_interval = POLL_INITIAL_INTERVAL

        while True:
            data = await self.redis.get(result_key)
            if data:
                await self.redis.delete(result_key)
                return json.loads(data)

            if elapsed >= self.command_timeout:
                return None

            await asyncio.sleep(poll_interval)
            elapsed += poll_interval

            poll_interval = min(poll_interval * POLL_BACKOFF, POLL_MAX_INTERVAL)

    def start_listening(self) -> None:
        """Start the background task relaying worker events to handlers."""
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self.listen())

    async def listen(self) -> None:
        """
        Relay events from the worker's pub/sub channel until cancelled.

        Logic:
        1. Subscribe and dispatch every message
        2. On a Redis failure, log it, back off and subscribe again
        3. After a resubscribe, run on_reconnect so events missed meanwhile are reconciled
        4. Return only when the subscription ends without an error
        """
        channel = self.events_channel
        retry_delay = POLL_INITIAL_INTERVAL
        reconnecting = False

        while True:
            pubsub = self.redis.pubsub()
            try:
                await pubsub.subscribe(channel)
                logger.info(f"Subscribed to channel: {channel}")

                if reconnecting:
                    reconnecting = False
                    await self._reconnected()

                async for message in pubsub.listen():
                    if message["type"] != "message":
                        continue
                    retry_delay = POLL_INITIAL_INTERVAL
                    await self.dispatch(message["data"])

                return

            except asyncio.CancelledError:
                logger.info("Stopping session event listener")
                raise
            except RedisConnectionError as e:
                logger.warning(f"Lost Redis connection on {channel}: {e}; resubscribing in {retry_delay:.2f}s")
            except Exception:
                logger.exception(f"Session event listener failed; resubscribing in {retry_delay:.2f}s")
            finally:
                await self._close_pubsub(pubsub, channel)

            reconnecting = True
            await asyncio.sleep(retry_delay)
            retry_delay = min(retry_delay * POLL_BACKOFF, RECONNECT_MAX_INTERVAL)

    async def dispatch(self, payload) -> None:
        """Parse one raw event payload and hand it to every handler."""
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")

        try:
            event = ProviderEvent.from_json(payload)
        except ValueError as e:
            logger.warning(f"Ignoring malformed session event {payload!r}: {e}")
            return

        logger.info(f"Session event received: {event.type.value}")
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception:
                logger.exception(f"Session event handler failed for {event.type.value}")

    async def close(self) -> None:
        """Stop the event listener."""
        if self._listener is None:
            return

        self._listener.cancel()
        try:
            await self._listener
        except asyncio.CancelledError:
            pass
        self._listener = None

    async def _publish_command(self, command_type: str, command_id: Optional[str] = None, **fields) -> int:
        command = {
            "id": command_id or str(uuid.uuid4()),
            "type": command_type,
            "issued_at": datetime.now(UTC).isoformat(),
            **fields,
        }
        receivers = await self.redis.publish(self.commands_channel, json.dumps(command))
        logger.info(f"Published {command_type} command {command['id']} to {self.commands_channel}")
        return receivers

    async def _reconnected(self) -> None:
        if self.on_reconnect is None:
            return
        try:
            await self.on_reconnect()
        except Exception:
            logger.exception("Reconnect callback failed")

    async def _close_pubsub(self, pubsub, channel: str) -> None:
        try:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
        except Exception as e:
            # The connection may already be gone
            logger.debug(f"Ignoring error while closing pub/sub for {channel}: {e}")
