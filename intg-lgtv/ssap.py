"""
SSAP client for LG webOS TVs.

Implements the subset of the Simple Service Access Protocol the integration
needs: registration (pairing), fire-and-forget requests and subscriptions over
one persistent WebSocket.
"""

import asyncio
import contextlib
import itertools
import json
import logging
import os
import ssl
from types import MappingProxyType
from typing import Any, Callable, Mapping

import aiohttp
import certifi
from const import INSECURE_PORT, SECURE_PORT
from errors import HardTransportError

_LOG = logging.getLogger(__name__)

MANIFEST_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "pairing_manifest.json")
REGISTER_ID = "register_0"


def load_manifest(path: str = MANIFEST_PATH) -> Mapping[str, Any]:
    """
    Load the registration manifest sent to the TV when pairing.

    Loaded once at start-up and shared read-only by all sessions.
    """
    with open(path, encoding="utf-8") as file:
        return MappingProxyType(json.load(file))


class SsapClient:
    """WebSocket connection to a single LG TV."""

    def __init__(
        self,
        address: str,
        *,
        secure: bool = False,
        port: int | None = None,
        timeout: int = 15000,
        client_key: str | None = None,
        manifest: Mapping[str, Any] | None = None,
        on_prompt: Callable[[], None] | None = None,
        on_close: Callable[[BaseException | None], None] | None = None,
        log_id: str = "",
    ) -> None:
        """
        Create instance.

        :param address: IP address or hostname of the TV
        :param secure: use wss on the TLS port
        :param port: WebSocket port, the SSAP default for the scheme if None
        :param timeout: connect timeout in milliseconds
        :param client_key: pairing key from a previous registration
        :param manifest: registration manifest
        :param on_prompt: called when the TV shows the pairing prompt
        :param on_close: called with the error, or None, when an established
            connection ends
        :param log_id: prefix for log messages
        """
        self._address = address
        self._secure = secure
        self._port = port or (SECURE_PORT if secure else INSECURE_PORT)
        self._timeout = timeout / 1000
        self._client_key = client_key
        self._manifest = manifest or {}
        self._on_prompt = on_prompt
        self._on_close = on_close
        self._log_id = log_id
        self._ids = itertools.count(1)
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reader: asyncio.Task | None = None
        self._subscriptions: dict[str, Callable[[Mapping[str, Any]], None]] = {}
        self._closing = False

    @property
    def url(self) -> str:
        """Return the WebSocket URL of the TV."""
        scheme = "wss" if self._secure else "ws"
        return f"{scheme}://{self._address}:{self._port}"

    @property
    def client_key(self) -> str | None:
        """Return the pairing key, updated after a successful registration."""
        return self._client_key

    def is_alive(self) -> bool:
        """Return True while the WebSocket is open."""
        return self._ws is not None and not self._ws.closed

    def _ssl_context(self) -> ssl.SSLContext | None:
        if not self._secure:
            return None
        # The TV presents a self-signed certificate
        context = ssl.create_default_context(cafile=certifi.where())
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    async def connect(self) -> None:
        """
        Open the WebSocket and register with the TV.

        Returns once the TV accepted the registration, which may require the
        user to confirm a prompt on screen.
        """
        self._closing = False
        _LOG.debug("[%s] Connecting to %s", self._log_id, self.url)
        self._session = aiohttp.ClientSession()
        try:
            async with asyncio.timeout(self._timeout):
                self._ws = await self._session.ws_connect(
                    self.url, ssl=self._ssl_context(), heartbeat=None
                )
            await self._register()
        except BaseException:
            await self.close()
            raise
        self._reader = asyncio.create_task(self._read_loop())

    async def _register(self) -> None:
        payload: dict[str, Any] = {
            "forcePairing": False,
            "pairingType": "PROMPT",
            "manifest": dict(self._manifest),
        }
        if self._client_key:
            payload["client-key"] = self._client_key
        await self._send({"type": "register", "id": REGISTER_ID, "payload": payload})

        prompted = False
        while True:
            # Once the prompt is on screen, the user decides how long this takes
            if prompted:
                msg = await self._ws.receive()
            else:
                async with asyncio.timeout(self._timeout):
                    msg = await self._ws.receive()
            if msg.type != aiohttp.WSMsgType.TEXT:
                raise HardTransportError(
                    f"Connection closed during registration ({msg.type.name})"
                )
            data = json.loads(msg.data)
            response = data.get("payload") or {}
            match data.get("type"):
                case "registered":
                    if response.get("client-key"):
                        self._client_key = response["client-key"]
                    _LOG.debug("[%s] Registered", self._log_id)
                    return
                case "error":
                    raise HardTransportError(data.get("error") or "Registration failed")
                case "response" if response.get("pairingType") == "PROMPT":
                    _LOG.debug("[%s] Pairing prompt shown", self._log_id)
                    prompted = True
                    if self._on_prompt:
                        self._on_prompt()

    async def close(self) -> None:
        """Close the WebSocket. Does not report through on_close."""
        self._closing = True
        if self._reader and not self._reader.done():
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
        self._reader = None
        if self._ws is not None:
            with contextlib.suppress(Exception):
                await self._ws.close()
            self._ws = None
        if self._session is not None:
            await self._session.close()
            self._session = None
        self._subscriptions.clear()

    async def request(self, uri: str, payload: Mapping[str, Any] | None = None) -> None:
        """Send a request without waiting for its response."""
        message: dict[str, Any] = {
            "type": "request",
            "id": f"request_{next(self._ids)}",
            "uri": uri,
        }
        if payload is not None:
            message["payload"] = dict(payload)
        await self._send(message)

    async def subscribe(
        self, uri: str, callback: Callable[[Mapping[str, Any]], None]
    ) -> str:
        """
        Subscribe to an endpoint.

        :return: the subscription id
        """
        subscription_id = f"subscribe_{next(self._ids)}"
        self._subscriptions[subscription_id] = callback
        await self._send({"type": "subscribe", "id": subscription_id, "uri": uri})
        return subscription_id

    async def _send(self, message: dict[str, Any]) -> None:
        if not self.is_alive():
            raise HardTransportError("Not connected")
        _LOG.debug("[%s] -> %s", self._log_id, message)
        await self._ws.send_json(message)

    async def _read_loop(self) -> None:
        error: BaseException | None = None
        try:
            async for msg in self._ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        data = json.loads(msg.data)
                    except json.JSONDecodeError:
                        _LOG.warning("[%s] Invalid JSON from TV: %r", self._log_id, msg.data)
                        continue
                    self._dispatch(data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    error = self._ws.exception()
                    break
        except asyncio.CancelledError:
            raise
        except Exception as ex:  # pylint: disable=broad-exception-caught
            error = ex

        _LOG.debug("[%s] Connection closed: %s", self._log_id, error)
        if not self._closing and self._on_close:
            self._on_close(error)

    def _dispatch(self, data: Mapping[str, Any]) -> None:
        callback = self._subscriptions.get(data.get("id"))
        if callback is None:
            _LOG.debug("[%s] <- %s", self._log_id, data)
            return
        if data.get("type") == "error":
            _LOG.warning(
                "[%s] Subscription %s failed: %s",
                self._log_id,
                data.get("id"),
                data.get("error"),
            )
            return
        callback(data.get("payload") or {})
