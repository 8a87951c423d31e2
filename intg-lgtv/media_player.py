"""
Media-player entity functions.

:license: Mozilla Public License Version 2.0, see LICENSE for more details.
"""

import logging
from typing import Any

import ucapi
from commands import Action
from const import VOLUME_STEP, LgTvConfig, SimpleCommands
from tv import LgTv
from ucapi import EntityTypes, MediaPlayer, media_player
from ucapi.media_player import Attributes, DeviceClasses
from ucapi_framework import create_entity_id

_LOG = logging.getLogger(__name__)


features = [
    media_player.Features.ON_OFF,
    media_player.Features.TOGGLE,
    media_player.Features.VOLUME,
    media_player.Features.VOLUME_UP_DOWN,
    media_player.Features.MUTE_TOGGLE,
    media_player.Features.MUTE,
    media_player.Features.UNMUTE,
]


class LgTvMediaPlayer(MediaPlayer):
    """Representation of an LG TV MediaPlayer entity."""

    def __init__(self, config_device: LgTvConfig, device: LgTv):
        """Initialize the class."""
        self._device = device
        _LOG.debug("LgTvMediaPlayer init")
        entity_id = create_entity_id(EntityTypes.MEDIA_PLAYER, config_device.identifier)
        self.config = config_device

        super().__init__(
            entity_id,
            config_device.name,
            features,
            attributes={
                Attributes.STATE: device.state,
                Attributes.VOLUME: 0,
                Attributes.MUTED: False,
                Attributes.SOURCE: "",
            },
            device_class=DeviceClasses.TV,
            options={
                media_player.Options.SIMPLE_COMMANDS: [SimpleCommands.RESTART.value]
            },
            cmd_handler=self.media_player_cmd_handler,
        )

    async def media_player_cmd_handler(
        self, entity: MediaPlayer, cmd_id: str, params: dict[str, Any] | None
    ) -> ucapi.StatusCodes:
        """
        Media-player entity command handler.

        Translates remote commands into session actions. Actions are fire-and-forget:
        OK means the TV session accepted the action, not that the TV executed it.

        :param entity: media-player entity
        :param cmd_id: command
        :param params: optional command parameters
        :return: OK, or why the command was refused
        """
        _LOG.info(
            "Got %s command request: %s %s", entity.id, cmd_id, params if params else ""
        )

        action_params: dict[str, Any] | None = None
        match cmd_id:
            case media_player.Commands.ON:
                action = Action.POWER_ON
            case media_player.Commands.OFF:
                action = Action.POWER_OFF
            case media_player.Commands.TOGGLE:
                action = Action.TOGGLE
            case media_player.Commands.VOLUME:
                action = Action.VOLUME_SET
                try:
                    volume = float((params or {})["volume"])
                except (KeyError, TypeError, ValueError):
                    return ucapi.StatusCodes.BAD_REQUEST
                action_params = {"value": volume / 100}
            case media_player.Commands.VOLUME_UP:
                action = Action.VOLUME_INCREASE
                action_params = {"amount": VOLUME_STEP}
            case media_player.Commands.VOLUME_DOWN:
                action = Action.VOLUME_DECREASE
                action_params = {"amount": VOLUME_STEP}
            case media_player.Commands.MUTE:
                action = Action.MUTE
            case media_player.Commands.UNMUTE:
                action = Action.UNMUTE
            case media_player.Commands.MUTE_TOGGLE:
                action = Action.MUTE_TOGGLE
            # --- simple commands ---
            case SimpleCommands.RESTART:
                action = Action.RESTART
            case _:
                return ucapi.StatusCodes.NOT_IMPLEMENTED

        try:
            handled = await self._device.dispatch(action, action_params)
        except Exception as ex:  # pylint: disable=broad-except
            _LOG.error("Error executing command %s: %s", cmd_id, ex)
            return ucapi.StatusCodes.TIMEOUT
        if not handled:
            return ucapi.StatusCodes.NOT_IMPLEMENTED
        return ucapi.StatusCodes.OK
