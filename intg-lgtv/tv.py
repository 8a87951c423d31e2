"""
This module implements the LG TV device of the Remote Two integration driver.

"""

import logging
from asyncio import AbstractEventLoop
from types import MappingProxyType
from typing import Any, Mapping

from commands import Action
from const import (
    ATTR_CHANNEL,
    ATTR_INPUT,
    ATTR_MUTED,
    ATTR_ONLINE,
    ATTR_POWER,
    ATTR_VOLUME,
    LG_STATE_MAPPING,
    LgTvConfig,
    States,
)
from session import LgTvSession
from ssap import SsapClient
from ucapi import EntityTypes
from ucapi.media_player import Attributes as MediaAttr
from ucapi.media_player import States as MediaStates
from ucapi_framework import ExternalClientDevice, create_entity_id
from ucapi_framework.device import DeviceEvents

_LOG = logging.getLogger(__name__)


def media_attributes(changes: Mapping[str, Any]) -> dict[MediaAttr, Any]:
    """Map changed canonical attributes onto media-player attributes."""
    update: dict[MediaAttr, Any] = {}
    if ATTR_POWER in changes:
        update[MediaAttr.STATE] = (
            MediaStates.ON if changes[ATTR_POWER] is True else MediaStates.OFF
        )
    if ATTR_VOLUME in changes:
        update[MediaAttr.VOLUME] = round(float(changes[ATTR_VOLUME]) * 100)
    if ATTR_MUTED in changes:
        update[MediaAttr.MUTED] = bool(changes[ATTR_MUTED])
    if ATTR_INPUT in changes:
        update[MediaAttr.SOURCE] = changes[ATTR_INPUT] or ""
    if ATTR_CHANNEL in changes:
        update[MediaAttr.MEDIA_TITLE] = f"Channel {changes[ATTR_CHANNEL]}"
    return update


class LgTv(ExternalClientDevice):
    """Representing an LG webOS TV Device."""

    manifest: Mapping[str, Any] = MappingProxyType({})
    """Registration manifest shared by all devices, loaded once by the driver."""
    client_factory = SsapClient
    """Creates the SSAP client of each connection."""

    def __init__(
        self,
        device_config: LgTvConfig,
        loop: AbstractEventLoop | None = None,
        config_manager=None,
        driver=None,
    ) -> None:
        """Create instance."""
        self._reachable = True
        self._session = LgTvSession(
            device_config,
            self,
            manifest=self.manifest,
            client_factory=self.client_factory,
        )
        super().__init__(
            device_config,
            loop,
            enable_watchdog=False,
            max_reconnect_attempts=None,
            config_manager=config_manager,
            driver=driver,
        )

    @property
    def identifier(self) -> str:
        """Return the device identifier."""
        if not self._device_config.identifier:
            raise ValueError("Instance not initialized, no identifier available")
        return self._device_config.identifier

    @property
    def log_id(self) -> str:
        """Return a log identifier."""
        return (
            self._device_config.name
            if self._device_config.name
            else self._device_config.identifier
        )

    @property
    def name(self) -> str:
        """Return the device name."""
        return self._device_config.name

    @property
    def address(self) -> str | None:
        """Return the optional device address."""
        return self._device_config.address

    @property
    def session(self) -> LgTvSession:
        """Return the device session."""
        return self._session

    @property
    def state(self) -> MediaStates:
        """Return the device state."""
        if not self._reachable:
            return LG_STATE_MAPPING[States.UNAVAILABLE]
        if self._session.get_attribute(ATTR_POWER) is True:
            return LG_STATE_MAPPING[States.ON]
        return LG_STATE_MAPPING[States.OFF]

    @property
    def attributes(self) -> dict[str, Any]:
        """Return the device attributes."""
        updated_data = media_attributes(self._session.reconciler.values)
        updated_data[MediaAttr.STATE] = self.state
        return updated_data

    async def create_client(self) -> LgTvSession:
        """Return the session driving the TV connection."""
        return self._session

    async def connect_client(self) -> None:
        """Start the session."""
        await self._session.start()

    async def disconnect_client(self) -> None:
        """Stop the session."""
        await self._session.stop()

    def check_client_connected(self) -> bool:
        """
        Check if the session holds an established connection.

        The session reconnects on its own, a False here is not a reason to
        reconnect from the outside.
        """
        return self._session.is_connected

    async def disconnect(self) -> None:
        """
        Stop the session.

        The entity keeps showing the TV, reported as OFF or UNAVAILABLE
        depending on reachability.
        """
        _LOG.debug("[%s] Disconnecting from device", self.log_id)
        await self.disconnect_client()
        self._client = None
        self._is_connected = False
        self.events.emit(
            DeviceEvents.UPDATE,
            self.get_entity_id(),
            {MediaAttr.STATE: self.state},
        )
        _LOG.debug("[%s] Disconnected", self.log_id)

    async def dispatch(self, action: Action | str, params: dict[str, Any] | None = None) -> bool:
        """Execute a session action, see commands.Action."""
        return await self._session.dispatch(action, params)

    def get_entity_id(self) -> str:
        """Return the entity ID for this device."""
        return create_entity_id(EntityTypes.MEDIA_PLAYER, self.identifier)

    # SessionHost

    def update_attributes(self, changes: dict[str, Any]) -> None:
        """Publish changed canonical attributes to the media-player entity."""
        update = media_attributes(changes)
        if MediaAttr.STATE in update:
            update[MediaAttr.STATE] = self.state
        if update:
            self.events.emit(DeviceEvents.UPDATE, self.get_entity_id(), update)
        if changes.get(ATTR_ONLINE) is True:
            # Every (re)connect refreshes the entity state on the remote
            self.events.emit(DeviceEvents.CONNECTED, self.identifier)

    def set_reachable(self, reachable: bool) -> None:
        """Mark the TV reachable or unavailable for the user."""
        if reachable == self._reachable:
            return
        _LOG.info(
            "[%s] Device %s", self.log_id, "reachable" if reachable else "unreachable"
        )
        self._reachable = reachable
        self.events.emit(
            DeviceEvents.UPDATE, self.get_entity_id(), {MediaAttr.STATE: self.state}
        )

    def warn(self, message: str) -> None:
        """Show a warning as media title, the only free text on the remote."""
        _LOG.warning("[%s] %s", self.log_id, message)
        self.events.emit(
            DeviceEvents.UPDATE, self.get_entity_id(), {MediaAttr.MEDIA_TITLE: message}
        )

    def store_client_key(self, client_key: str) -> None:
        """Persist the pairing key handed out by the TV."""
        _LOG.debug("[%s] Client key updated", self.log_id)
        self._device_config.client_key = client_key
        if self._config_manager:
            self._config_manager.update(self._device_config)
