"""
Connection lifecycle of one LG TV.

The session is a single-threaded state machine. Transport callbacks,
subscription pushes and timer expiries never touch session state directly: they
post typed events onto one ordered queue, which the session consumes in order.
Every event carries the generation of the connection it belongs to, so events
of a connection that has since been discarded are dropped.
"""

import asyncio
import contextlib
import functools
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Mapping, Protocol

from backoff import OFFLINE_THRESHOLD, retry_delay
from commands import Action, CommandTranslator, parse_action
from const import (
    OFFLINE_ATTRIBUTES,
    ONLINE_ATTRIBUTES,
    PAIRING_WARNING,
    VOLUME_DEBOUNCE_WINDOW,
    LgTvConfig,
)
from debounce import Debouncer
from errors import classify_transport_error
from reconciler import AttributeReconciler
from ssap import SsapClient
from subscriptions import Channel, SubscriptionRouter

_LOG = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    """Connection state of a session."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    AWAITING_PAIRING = "AWAITING_PAIRING"
    CLOSING = "CLOSING"


@dataclass(frozen=True)
class Connected:
    """The transport connected and registered."""


@dataclass(frozen=True)
class ConnectFailed:
    """The transport failed to connect."""

    error: BaseException


@dataclass(frozen=True)
class ConnectionClosed:
    """An established connection ended, with error or None on a clean close."""

    error: BaseException | None = None


@dataclass(frozen=True)
class PairingPrompted:
    """The TV asks the user to accept the pairing request."""


@dataclass(frozen=True)
class PushReceived:
    """A subscription delivered a payload."""

    channel: Channel
    payload: Mapping[str, Any]


@dataclass(frozen=True)
class ReconnectDue:
    """The reconnect delay elapsed."""


@dataclass(frozen=True)
class ChannelFeedSettled:
    """The settle delay before registering the channel feed elapsed."""


SessionEvent = (
    Connected
    | ConnectFailed
    | ConnectionClosed
    | PairingPrompted
    | PushReceived
    | ReconnectDue
    | ChannelFeedSettled
)


class SessionHost(Protocol):
    """Host collaborator of a session."""

    def update_attributes(self, changes: dict[str, Any]) -> None:
        """Publish a batch of changed canonical attributes."""

    def set_reachable(self, reachable: bool) -> None:
        """Mark the device reachable or unreachable for the user."""

    def warn(self, message: str) -> None:
        """Show a warning to the user."""

    def store_client_key(self, client_key: str) -> None:
        """Persist a new pairing key."""


class LgTvSession:
    """Session with one LG TV."""

    # pylint: disable=too-many-instance-attributes
    def __init__(
        self,
        config: LgTvConfig,
        host: SessionHost,
        *,
        manifest: Mapping[str, Any] | None = None,
        client_factory: Callable[..., SsapClient] = SsapClient,
        scheduler: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """
        Create instance.

        :param config: device configuration
        :param host: receives attribute updates, liveness and user warnings
        :param manifest: registration manifest, see ssap.load_manifest
        :param client_factory: creates the SSAP client of each connection
        :param scheduler: object providing call_later, the running loop by default
        """
        self._config = config
        self._host = host
        self._manifest = manifest
        self._client_factory = client_factory
        self._scheduler = scheduler
        self._state = ConnectionState.DISCONNECTED
        self._failures = 0
        self._stopping = False
        self._generation = 0
        self._client: SsapClient | None = None
        self._router: SubscriptionRouter | None = None
        self._connect_task: asyncio.Task | None = None
        self._consumer: asyncio.Task | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._queue: asyncio.Queue[tuple[int, SessionEvent]] = asyncio.Queue()
        # Held while an event is handled and by start, stop and restart
        self._lock = asyncio.Lock()
        self.reconciler = AttributeReconciler(host.update_attributes, self.log_id)
        self._volume = Debouncer(
            VOLUME_DEBOUNCE_WINDOW, self.reconciler.reconcile, scheduler
        )
        self._translator = CommandTranslator(self.reconciler.get, self.log_id)

    @property
    def log_id(self) -> str:
        """Return a log identifier."""
        return self._config.name if self._config.name else self._config.identifier

    @property
    def state(self) -> ConnectionState:
        """Return the connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """Return True if the session holds an established connection."""
        return self._state is ConnectionState.CONNECTED

    @property
    def failures(self) -> int:
        """Return the number of consecutive hard failures."""
        return self._failures

    @property
    def stopping(self) -> bool:
        """Return True once stop() was called and until the next start."""
        return self._stopping

    @property
    def scheduler(self) -> asyncio.AbstractEventLoop:
        """Return the timer source."""
        return self._scheduler or asyncio.get_running_loop()

    def get_attribute(self, key: str, default: Any = None) -> Any:
        """Return the last known value of a canonical attribute."""
        return self.reconciler.get(key, default)

    async def start(self) -> None:
        """
        Start the session.

        :raises ConfigurationError: if no address is configured
        """
        self._config.validate()
        async with self._lock:
            if self._state is not ConnectionState.DISCONNECTED:
                _LOG.debug("[%s] Already %s", self.log_id, self._state)
                return
            _LOG.debug("[%s] Starting", self.log_id)
            self._stopping = False
            self._ensure_consumer()
            self._host.set_reachable(True)
            self._open()

    async def stop(self) -> None:
        """Stop the session and suppress any further reconnect."""
        _LOG.debug("[%s] Stopping", self.log_id)
        self._stopping = True
        async with self._lock:
            if self._state is not ConnectionState.DISCONNECTED:
                self._state = ConnectionState.CLOSING
            await self._teardown()
        consumer = self._consumer
        self._consumer = None
        if consumer and consumer is not asyncio.current_task():
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer

    async def restart(self) -> None:
        """Discard the connection and connect again from scratch."""
        self._config.validate()
        _LOG.info("[%s] Restarting", self.log_id)
        async with self._lock:
            await self._teardown()
            self._stopping = False
            self._failures = 0
            self._ensure_consumer()
            self._host.set_reachable(True)
            self._open()

    async def dispatch(
        self, action: Action | str, params: Mapping[str, Any] | None = None
    ) -> bool:
        """
        Execute an action.

        :return: False if the action is not part of the session's vocabulary
        """
        parsed = parse_action(str(action))
        if parsed is None:
            return False
        if parsed is Action.RESTART:
            await self.restart()
            return True
        if self._state is not ConnectionState.CONNECTED or self._client is None:
            _LOG.warning(
                "[%s] %s is offline, can't send %s",
                self.log_id,
                self._config.address,
                parsed,
            )
            return True

        for request in self._translator.translate(parsed, params):
            _LOG.debug("[%s] Request %s %s", self.log_id, request.uri, request.payload)
            try:
                await self._client.request(request.uri, request.payload)
            except Exception as ex:  # pylint: disable=broad-exception-caught
                _LOG.error("[%s] Failed to send %s: %s", self.log_id, request.uri, ex)
        return True

    def _post(self, generation: int, event: SessionEvent) -> None:
        self._queue.put_nowait((generation, event))

    def _ensure_consumer(self) -> None:
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.create_task(self._consume())

    async def _consume(self) -> None:
        while True:
            generation, event = await self._queue.get()
            try:
                async with self._lock:
                    if generation != self._generation:
                        _LOG.debug("[%s] Dropping stale %s", self.log_id, event)
                        continue
                    await self._handle(event)
            except Exception:  # pylint: disable=broad-exception-caught
                _LOG.exception("[%s] Error handling %s", self.log_id, event)
            finally:
                self._queue.task_done()

    async def _handle(self, event: SessionEvent) -> None:
        match event:
            case Connected():
                await self._on_connected()
            case PairingPrompted():
                self._on_pairing_prompt()
            case ConnectFailed(error=error) | ConnectionClosed(error=error):
                await self._on_transport_down(error)
            case PushReceived(channel=channel, payload=payload):
                if self._router is not None and self.is_connected:
                    self._router.handle(channel, payload)
            case ReconnectDue():
                self._reconnect_handle = None
                if self._stopping or self._state is not ConnectionState.DISCONNECTED:
                    return
                self._open()
            case ChannelFeedSettled():
                if self._stopping or self._router is None or not self.is_connected:
                    return
                await self._router.activate_channel_feed()

    def _open(self) -> None:
        self._generation += 1
        generation = self._generation
        self._state = ConnectionState.CONNECTING
        _LOG.debug("[%s] Connecting to %s", self.log_id, self._config.address)
        self._client = self._client_factory(
            self._config.address,
            secure=self._config.secure,
            timeout=self._config.timeout,
            client_key=self._config.client_key,
            manifest=self._manifest,
            on_prompt=functools.partial(self._post, generation, PairingPrompted()),
            on_close=lambda error: self._post(generation, ConnectionClosed(error)),
            log_id=self.log_id,
        )
        self._connect_task = asyncio.create_task(
            self._connect(self._client, generation)
        )

    async def _connect(self, client: SsapClient, generation: int) -> None:
        try:
            await client.connect()
        except Exception as ex:  # pylint: disable=broad-exception-caught
            self._post(generation, ConnectFailed(ex))
        else:
            self._post(generation, Connected())

    async def _on_connected(self) -> None:
        self._state = ConnectionState.CONNECTED
        self._failures = 0
        _LOG.info("[%s] Connected: %s", self.log_id, self._config.address)
        self._host.set_reachable(True)

        client_key = self._client.client_key
        if client_key and client_key != self._config.client_key:
            _LOG.debug("[%s] Client key updated", self.log_id)
            self._config.client_key = client_key
            self._host.store_client_key(client_key)

        self.reconciler.reconcile(ONLINE_ATTRIBUTES)

        generation = self._generation
        self._router = SubscriptionRouter(
            self._client,
            self.reconciler,
            self._volume,
            on_push=lambda channel, payload: self._post(
                generation, PushReceived(channel, payload)
            ),
            on_settled=functools.partial(self._post, generation, ChannelFeedSettled()),
            scheduler=self.scheduler,
            log_id=self.log_id,
        )
        await self._router.register()

    def _on_pairing_prompt(self) -> None:
        if self._state is not ConnectionState.CONNECTING:
            return
        self._state = ConnectionState.AWAITING_PAIRING
        _LOG.warning("[%s] Pairing prompt: %s", self.log_id, self._config.address)
        self._host.warn(PAIRING_WARNING)

    async def _on_transport_down(self, error: BaseException | None) -> None:
        await self._teardown()
        if self._stopping:
            return

        if error is None:
            _LOG.info("[%s] Connection closed: %s", self.log_id, self._config.address)
            delay = retry_delay(self._failures, self._config.retry_interval)
        else:
            transport_error = classify_transport_error(error)
            if transport_error.soft:
                _LOG.info("[%s] Soft error: %s", self.log_id, transport_error)
                delay = self._config.retry_interval
            else:
                self._failures += 1
                _LOG.error(
                    "[%s] Error (%d in a row): %s",
                    self.log_id,
                    self._failures,
                    transport_error,
                )
                delay = retry_delay(self._failures, self._config.retry_interval)
                if self._failures >= OFFLINE_THRESHOLD:
                    self._host.set_reachable(False)

        _LOG.debug("[%s] Reconnecting in %d ms", self.log_id, delay)
        self._reconnect_handle = self.scheduler.call_later(
            delay / 1000, self._post, self._generation, ReconnectDue()
        )

    async def _teardown(self) -> None:
        """Release the connection; queued events of it become stale."""
        self._generation += 1
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
        if self._router is not None:
            self._router.close()
            self._router = None
        connect_task = self._connect_task
        self._connect_task = None
        if connect_task and not connect_task.done():
            connect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await connect_task
        client = self._client
        self._client = None
        if client is not None:
            with contextlib.suppress(Exception):
                await client.close()
        self._state = ConnectionState.DISCONNECTED
        self.reconciler.reconcile(OFFLINE_ATTRIBUTES)
