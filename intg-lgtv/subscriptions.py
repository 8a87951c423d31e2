"""
Server-push subscriptions of a connected LG TV.

Each push channel delivers protocol-shaped payloads; they are normalized here
into canonical attribute deltas before they reach the reconciler.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Mapping

from const import (
    ATTR_CHANNEL,
    ATTR_INPUT,
    ATTR_MUTED,
    ATTR_OUTPUT,
    ATTR_VOLUME,
    CHANNEL_SETTLE_DELAY,
    LIVE_TV_APP_ID,
    Uri,
)
from reconciler import IGNORED, AttributeReconciler

_LOG = logging.getLogger(__name__)


class Channel(StrEnum):
    """Push channels."""

    VOLUME = "volume"
    FOREGROUND_APP = "foreground_app"
    CURRENT_CHANNEL = "current_channel"


CHANNEL_URIS = {
    Channel.VOLUME: Uri.GET_VOLUME,
    Channel.FOREGROUND_APP: Uri.FOREGROUND_APP,
    Channel.CURRENT_CHANNEL: Uri.CURRENT_CHANNEL,
}


def _or_ignored(value: Any) -> Any:
    return IGNORED if value is None else value


@dataclass(frozen=True)
class VolumeSnapshot:
    """Full audio status, as sent by newer firmware or on the first push."""

    volume: int | None = None
    muted: bool | None = None
    output: str | None = None

    def to_attributes(self) -> dict[str, Any]:
        """Return the canonical attribute delta."""
        return {
            ATTR_VOLUME: IGNORED if self.volume is None else self.volume / 100,
            ATTR_MUTED: _or_ignored(self.muted),
            ATTR_OUTPUT: _or_ignored(self.output),
        }


@dataclass(frozen=True)
class VolumeChangeList:
    """Audio status carrying only the fields listed in changed."""

    changed: tuple[str, ...]
    volume: int | None = None
    muted: bool | None = None

    def to_attributes(self) -> dict[str, Any]:
        """Return the canonical attribute delta."""
        attributes: dict[str, Any] = {ATTR_VOLUME: IGNORED, ATTR_MUTED: IGNORED}
        if "volume" in self.changed and self.volume is not None:
            attributes[ATTR_VOLUME] = self.volume / 100
        if "muted" in self.changed and self.muted is not None:
            attributes[ATTR_MUTED] = self.muted
        return attributes


VolumePayload = VolumeSnapshot | VolumeChangeList


def parse_volume_payload(raw: Mapping[str, Any]) -> VolumePayload:
    """Return the tagged shape of a getVolume push."""
    status = raw.get("volumeStatus")
    if isinstance(status, Mapping):
        return VolumeSnapshot(
            volume=status.get("volume"),
            muted=status.get("muteStatus"),
            output=status.get("soundOutput"),
        )
    if raw.get("changed") is not None:
        return VolumeChangeList(
            changed=tuple(raw["changed"]),
            volume=raw.get("volume"),
            muted=raw.get("muted"),
        )
    return VolumeSnapshot(volume=raw.get("volume"), muted=raw.get("muted"))


@dataclass(frozen=True)
class ForegroundApp:
    """Active application push."""

    app_id: str | None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> "ForegroundApp":
        """Parse a getForegroundAppInfo push."""
        return cls(app_id=raw.get("appId"))

    def to_attributes(self) -> dict[str, Any]:
        """Return the canonical attribute delta."""
        return {ATTR_INPUT: _or_ignored(self.app_id)}


@dataclass(frozen=True)
class CurrentChannel:
    """Live TV channel push."""

    channel_number: str | None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> "CurrentChannel":
        """Parse a getCurrentChannel push."""
        return cls(channel_number=raw.get("channelNumber"))

    def to_attributes(self) -> dict[str, Any]:
        """Return the canonical attribute delta."""
        return {ATTR_CHANNEL: _or_ignored(self.channel_number)}


class SubscriptionRouter:
    """
    Push subscriptions of one connection.

    The volume and foreground-application channels are registered on connect.
    The current-channel feed is registered lazily, once per connection, a settle
    delay after the live TV application came to the foreground.
    """

    def __init__(
        self,
        client: Any,
        reconciler: AttributeReconciler,
        volume_sink: Callable[[dict[str, Any]], None],
        on_push: Callable[[Channel, Mapping[str, Any]], None],
        on_settled: Callable[[], None],
        scheduler: asyncio.AbstractEventLoop,
        log_id: str = "",
    ) -> None:
        """
        Create instance.

        :param client: connected SSAP client
        :param reconciler: canonical attribute set of the session
        :param volume_sink: receives volume deltas, usually through a debouncer
        :param on_push: receives raw pushes, to be fed back through handle()
        :param on_settled: called when the channel-feed settle delay elapsed
        :param scheduler: object providing call_later
        :param log_id: prefix for log messages
        """
        self._client = client
        self._reconciler = reconciler
        self._volume_sink = volume_sink
        self._on_push = on_push
        self._on_settled = on_settled
        self._scheduler = scheduler
        self._log_id = log_id
        self._handles: dict[Channel, Any] = {}
        self._channel_feed_latched = False
        self._settle_handle: asyncio.TimerHandle | None = None

    @property
    def channels(self) -> list[Channel]:
        """Return the registered channels."""
        return list(self._handles)

    async def register(self) -> None:
        """Register the eager push subscriptions."""
        for channel in (Channel.VOLUME, Channel.FOREGROUND_APP):
            await self._subscribe(channel)

    async def activate_channel_feed(self) -> None:
        """Register the current-channel feed unless it is already active."""
        self._settle_handle = None
        if Channel.CURRENT_CHANNEL in self._handles:
            return
        await self._subscribe(Channel.CURRENT_CHANNEL)

    def close(self) -> None:
        """Forget all subscriptions of this connection."""
        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None
        self._handles.clear()

    def handle(self, channel: Channel, payload: Mapping[str, Any]) -> None:
        """Normalize a push and hand it to the reconciler."""
        _LOG.debug("[%s] %s: %s", self._log_id, channel, payload)
        match channel:
            case Channel.VOLUME:
                self._volume_sink(parse_volume_payload(payload).to_attributes())
            case Channel.FOREGROUND_APP:
                app = ForegroundApp.parse(payload)
                self._reconciler.reconcile(app.to_attributes())
                if app.app_id == LIVE_TV_APP_ID:
                    self._latch_channel_feed()
            case Channel.CURRENT_CHANNEL:
                self._reconciler.reconcile(CurrentChannel.parse(payload).to_attributes())

    def _latch_channel_feed(self) -> None:
        if self._channel_feed_latched:
            return
        self._channel_feed_latched = True
        _LOG.debug("[%s] Live TV active, scheduling channel feed", self._log_id)
        self._settle_handle = self._scheduler.call_later(
            CHANNEL_SETTLE_DELAY / 1000, self._on_settled
        )

    async def _subscribe(self, channel: Channel) -> None:
        uri = CHANNEL_URIS[channel]
        _LOG.debug("[%s] Subscribing to %s", self._log_id, uri)
        self._handles[channel] = await self._client.subscribe(
            uri, functools.partial(self._on_push, channel)
        )
