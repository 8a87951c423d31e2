"""
Translation of abstract actions into SSAP requests.

Every action accepted from the host maps onto zero or more fire-and-forget
requests. Parameters are validated against a small schema per action kind; an
action whose parameters do not validate is logged and dropped.
"""

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Mapping

from const import ATTR_POWER, ATTR_VOLUME, NS, Uri
from errors import ActionPreconditionError

_LOG = logging.getLogger(__name__)


class Action(StrEnum):
    """Action vocabulary accepted from the host."""

    POWER_ON = "power_switch.on"
    POWER_OFF = "power_switch.off"
    TOGGLE = "toggle.toggle"
    VOLUME_INCREASE = "volume.increase"
    VOLUME_DECREASE = "volume.decrease"
    VOLUME_RELATIVE = "volume.relative"
    VOLUME_SET = "volume.set"
    VOLUME_SET_DB = "volume.setdb"
    MUTE = "muting.mute"
    UNMUTE = "muting.unmute"
    MUTE_TOGGLE = "muting.toggle"
    MUTE_SET = "muting.set"
    SEND_NOTIFICATION = f"{NS}.sendnotification"
    RESTART = "sys_system.restart"


def parse_action(name: str) -> Action | None:
    """Return the Action for a name, or None if it is not part of the vocabulary."""
    try:
        return Action(name)
    except ValueError:
        return None


@dataclass(frozen=True)
class Request:
    """A single SSAP request."""

    uri: str
    payload: dict[str, Any] | None = None


def _number_param(params: Mapping[str, Any], name: str) -> float | None:
    value = params.get(name)
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ActionPreconditionError(f"{name} must be a number, got {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError as ex:
            raise ActionPreconditionError(
                f"{name} must be a number, got {value!r}"
            ) from ex
    raise ActionPreconditionError(f"{name} must be a number, got {value!r}")


@dataclass(frozen=True)
class VolumeParams:
    """Parameters of the volume actions, all on a 0-1 scale."""

    amount: float | None = None
    value: float | None = None
    db: float | None = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "VolumeParams":
        """Validate raw action parameters."""
        return cls(
            amount=_number_param(params, "amount"),
            value=_number_param(params, "value"),
            db=_number_param(params, "db"),
        )

    @property
    def target(self) -> float:
        """Return the first of amount, value and db that is set, else 0."""
        return self.amount or self.value or self.db or 0


@dataclass(frozen=True)
class MuteParams:
    """Parameters of the muting actions."""

    muting: bool = False

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "MuteParams":
        """Validate raw action parameters."""
        value = params.get("muting")
        if isinstance(value, bool):
            return cls(muting=value)
        return cls(muting=value == "true")


@dataclass(frozen=True)
class NotificationParams:
    """Parameters of the send-notification action."""

    text: str

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "NotificationParams":
        """Validate raw action parameters."""
        text = params.get("text")
        if text is None:
            raise ActionPreconditionError("text param is mandatory and was not specified")
        return cls(text=str(text))


def _set_volume(volume: float) -> Request:
    # Out-of-range values are forwarded as-is, the TV clamps.
    # Rounding first drops float noise, e.g. 0.29 * 100 == 28.999999999999996.
    return Request(Uri.SET_VOLUME, {"volume": int(round(volume, 6))})


class CommandTranslator:
    """Map an action and its parameters onto SSAP requests."""

    def __init__(self, get_attribute: Callable[[str], Any], log_id: str = "") -> None:
        """
        Create instance.

        :param get_attribute: reads a value from the canonical attribute set
        :param log_id: prefix for log messages
        """
        self._get_attribute = get_attribute
        self._log_id = log_id

    def translate(
        self, action: Action, params: Mapping[str, Any] | None = None
    ) -> list[Request]:
        """
        Return the requests implementing an action.

        Missing or invalid parameters are logged and yield no request.
        """
        try:
            return self._translate(action, params or {})
        except ActionPreconditionError as ex:
            _LOG.warning("[%s] %s dropped: %s", self._log_id, action, ex)
            return []

    # pylint: disable=too-many-return-statements
    def _translate(self, action: Action, params: Mapping[str, Any]) -> list[Request]:
        match action:
            case Action.POWER_ON:
                return [Request(Uri.TURN_ON)]
            case Action.POWER_OFF:
                return [Request(Uri.TURN_OFF)]
            case Action.TOGGLE:
                # Unknown power state toggles to on
                if self._get_attribute(ATTR_POWER) is True:
                    return self._translate(Action.POWER_OFF, params)
                return self._translate(Action.POWER_ON, params)
            case Action.VOLUME_INCREASE | Action.VOLUME_DECREASE:
                volume_params = VolumeParams.from_params(params)
                current = self._get_attribute(ATTR_VOLUME)
                up = action is Action.VOLUME_INCREASE
                if current is None:
                    return [Request(Uri.VOLUME_UP if up else Uri.VOLUME_DOWN)]
                amount = volume_params.amount or 0
                level = float(current) + amount if up else float(current) - amount
                return [_set_volume(level * 100)]
            case Action.VOLUME_RELATIVE | Action.VOLUME_SET | Action.VOLUME_SET_DB:
                return [_set_volume(VolumeParams.from_params(params).target * 100)]
            case Action.MUTE | Action.UNMUTE | Action.MUTE_TOGGLE | Action.MUTE_SET:
                # Toggle does not look at the current mute state, it unmutes
                # unless muting="true" is passed.
                mute = action is Action.MUTE or MuteParams.from_params(params).muting
                return [Request(Uri.SET_MUTE, {"mute": mute})]
            case Action.SEND_NOTIFICATION:
                text = NotificationParams.from_params(params).text
                return [Request(Uri.CREATE_TOAST, {"message": text})]
            case _:
                raise ValueError(f"{action} is not translated into requests")
