"""Unit tests for the media-player mapping of the LG TV device."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import ucapi
from ucapi.media_player import Attributes, Commands, States

from commands import Action
from const import VOLUME_STEP, LgTvConfig
from media_player import LgTvMediaPlayer
from tv import media_attributes


def test_media_attributes():
    assert media_attributes(
        {
            "power_switch.state": True,
            "volume.level": 0.13,
            "muting.state": False,
            "x_lgtv.input": "netflix",
            "x_lgtv.channelid": "7",
        }
    ) == {
        Attributes.STATE: States.ON,
        Attributes.VOLUME: 13,
        Attributes.MUTED: False,
        Attributes.SOURCE: "netflix",
        Attributes.MEDIA_TITLE: "Channel 7",
    }
    assert media_attributes({"power_switch.state": False}) == {
        Attributes.STATE: States.OFF
    }
    assert media_attributes({"x_lgtv.online": True, "x_lgtv.output": "tv_speaker"}) == {}


class TestCommandHandler:
    @pytest.fixture
    def device(self):
        device = MagicMock()
        device.state = States.OFF
        device.dispatch = AsyncMock(return_value=True)
        return device

    @pytest.fixture
    def entity(self, device):
        config = LgTvConfig(
            identifier="lgtv_192_168_1_20", name="Living Room", address="192.168.1.20"
        )
        return LgTvMediaPlayer(config, device)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "cmd_id, params, action, action_params",
        [
            (Commands.ON, None, Action.POWER_ON, None),
            (Commands.OFF, None, Action.POWER_OFF, None),
            (Commands.TOGGLE, None, Action.TOGGLE, None),
            (Commands.VOLUME, {"volume": 25}, Action.VOLUME_SET, {"value": 0.25}),
            (Commands.VOLUME_UP, None, Action.VOLUME_INCREASE, {"amount": VOLUME_STEP}),
            (Commands.VOLUME_DOWN, None, Action.VOLUME_DECREASE, {"amount": VOLUME_STEP}),
            (Commands.MUTE, None, Action.MUTE, None),
            (Commands.UNMUTE, None, Action.UNMUTE, None),
            (Commands.MUTE_TOGGLE, None, Action.MUTE_TOGGLE, None),
            ("Restart", None, Action.RESTART, None),
        ],
    )
    async def test_commands_map_to_actions(
        self, entity, device, cmd_id, params, action, action_params
    ):
        status = await entity.media_player_cmd_handler(entity, cmd_id, params)

        assert status == ucapi.StatusCodes.OK
        device.dispatch.assert_awaited_once_with(action, action_params)

    @pytest.mark.asyncio
    async def test_volume_without_level(self, entity, device):
        status = await entity.media_player_cmd_handler(entity, Commands.VOLUME, {})
        assert status == ucapi.StatusCodes.BAD_REQUEST
        device.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"volume": "loud"}, {"volume": None}, None])
    async def test_volume_not_a_number(self, entity, device, params):
        status = await entity.media_player_cmd_handler(entity, Commands.VOLUME, params)
        assert status == ucapi.StatusCodes.BAD_REQUEST
        device.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsupported_command(self, entity, device):
        status = await entity.media_player_cmd_handler(entity, Commands.PLAY_PAUSE, None)
        assert status == ucapi.StatusCodes.NOT_IMPLEMENTED
        device.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_device_error(self, entity, device):
        device.dispatch.side_effect = ConnectionResetError()
        status = await entity.media_player_cmd_handler(entity, Commands.ON, None)
        assert status == ucapi.StatusCodes.TIMEOUT
