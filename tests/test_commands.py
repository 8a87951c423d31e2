"""Unit tests for the command translator."""

import logging

import pytest

from commands import Action, CommandTranslator, Request, parse_action


def _translator(**attributes):
    return CommandTranslator(attributes.get, "test")


def _requests(action, params=None, **attributes):
    return _translator(**attributes).translate(action, params)


def _set_volume(volume):
    return [Request("ssap://audio/setVolume", {"volume": volume})]


class TestPower:
    def test_on_off(self):
        assert _requests(Action.POWER_ON) == [Request("ssap://system/turnOn")]
        assert _requests(Action.POWER_OFF) == [Request("ssap://system/turnOff")]

    def test_toggle_when_on_turns_off(self):
        attributes = {"power_switch.state": True}
        assert _requests(Action.TOGGLE, **attributes) == [
            Request("ssap://system/turnOff")
        ]

    def test_toggle_when_off_turns_on(self):
        attributes = {"power_switch.state": False}
        assert _requests(Action.TOGGLE, **attributes) == [
            Request("ssap://system/turnOn")
        ]

    def test_toggle_when_unknown_turns_on(self):
        assert _requests(Action.TOGGLE) == [Request("ssap://system/turnOn")]


class TestVolume:
    def test_relative_steps_without_known_level(self):
        assert _requests(Action.VOLUME_INCREASE, {"amount": 0.1}) == [
            Request("ssap://audio/volumeUp")
        ]
        assert _requests(Action.VOLUME_DECREASE) == [Request("ssap://audio/volumeDown")]

    def test_increase_from_known_level(self):
        attributes = {"volume.level": 0.5}
        assert _requests(Action.VOLUME_INCREASE, {"amount": 0.25}, **attributes) == (
            _set_volume(75)
        )

    def test_decrease_from_known_level(self):
        attributes = {"volume.level": 0.5}
        assert _requests(Action.VOLUME_DECREASE, {"amount": 0.25}, **attributes) == (
            _set_volume(25)
        )

    def test_amount_defaults_to_zero(self):
        attributes = {"volume.level": 0.5}
        assert _requests(Action.VOLUME_INCREASE, **attributes) == _set_volume(50)

    def test_out_of_range_is_forwarded(self):
        assert _requests(
            Action.VOLUME_INCREASE, {"amount": 0.5}, **{"volume.level": 0.75}
        ) == _set_volume(125)
        assert _requests(
            Action.VOLUME_DECREASE, {"amount": 0.5}, **{"volume.level": 0.25}
        ) == _set_volume(-25)

    def test_absolute_actions(self):
        assert _requests(Action.VOLUME_SET, {"value": 0.25}) == _set_volume(25)
        assert _requests(Action.VOLUME_SET_DB, {"db": 0.75}) == _set_volume(75)
        assert _requests(Action.VOLUME_RELATIVE, {"amount": 0.5}) == _set_volume(50)
        assert _requests(Action.VOLUME_SET) == _set_volume(0)

    def test_every_percentage_lands_exactly(self):
        for percent in range(101):
            level = percent / 100
            assert _requests(Action.VOLUME_SET, {"value": level}) == _set_volume(percent)
            assert _requests(
                Action.VOLUME_INCREASE, {"amount": 0.01}, **{"volume.level": level}
            ) == _set_volume(percent + 1)
            assert _requests(
                Action.VOLUME_DECREASE, {"amount": 0.01}, **{"volume.level": level}
            ) == _set_volume(percent - 1)

    def test_fractions_are_truncated(self):
        assert _requests(Action.VOLUME_SET, {"value": 0.255}) == _set_volume(25)
        assert _requests(Action.VOLUME_SET, {"value": 0.999}) == _set_volume(99)

    def test_numeric_strings_accepted(self):
        assert _requests(Action.VOLUME_SET, {"value": "0.5"}) == _set_volume(50)

    def test_invalid_amount_is_dropped(self, caplog):
        caplog.set_level(logging.WARNING, logger="commands")
        assert _requests(Action.VOLUME_SET, {"value": "loud"}) == []
        assert "must be a number" in caplog.text


class TestMute:
    @pytest.mark.parametrize(
        "action, params, mute",
        [
            (Action.MUTE, None, True),
            (Action.UNMUTE, None, False),
            (Action.MUTE_SET, {"muting": "true"}, True),
            (Action.MUTE_SET, {"muting": "false"}, False),
            (Action.MUTE_SET, {"muting": True}, True),
            (Action.UNMUTE, {"muting": "true"}, True),
        ],
    )
    def test_mute_flag(self, action, params, mute):
        assert _requests(action, params) == [
            Request("ssap://audio/setMute", {"mute": mute})
        ]

    def test_toggle_does_not_invert(self):
        attributes = {"muting.state": False}
        assert _requests(Action.MUTE_TOGGLE, **attributes) == [
            Request("ssap://audio/setMute", {"mute": False})
        ]


class TestNotification:
    def test_sends_toast(self):
        assert _requests(Action.SEND_NOTIFICATION, {"text": "Dinner is ready"}) == [
            Request(
                "ssap://system.notifications/createToast",
                {"message": "Dinner is ready"},
            )
        ]

    def test_missing_text_sends_nothing(self, caplog):
        caplog.set_level(logging.WARNING, logger="commands")
        assert _requests(Action.SEND_NOTIFICATION, {}) == []
        assert "text param is mandatory" in caplog.text


def test_restart_is_not_a_request():
    with pytest.raises(ValueError):
        _requests(Action.RESTART)


def test_parse_action():
    assert parse_action("muting.toggle") is Action.MUTE_TOGGLE
    assert parse_action("x_lgtv.sendnotification") is Action.SEND_NOTIFICATION
    assert parse_action("media.play") is None
