"""LG webOS TV integration constants."""

from dataclasses import dataclass
from enum import Enum, IntEnum, StrEnum

from errors import ConfigurationError
from ucapi.media_player import States as MediaStates


@dataclass
class LgTvConfig:
    """LG TV device configuration."""

    identifier: str
    """Unique identifier of the device."""
    name: str
    """Friendly name of the device."""
    address: str
    """IP Address or hostname of the device."""
    secure: bool = False
    """Connect over TLS (wss, port 3001) instead of plain ws on port 3000."""
    timeout: int = 15000
    """Connect timeout in milliseconds."""
    retry_interval: int = 5000
    """Base reconnect interval in milliseconds."""
    client_key: str | None = None
    """Pairing key handed out by the TV after the user accepted the prompt."""

    def validate(self) -> None:
        """Raise ConfigurationError if the configuration cannot be used."""
        if not self.address:
            raise ConfigurationError(f"No host configured for {self.identifier}")


class SimpleCommands(str, Enum):
    """Additional simple commands of the LG TV not covered by media-player features."""

    RESTART = "Restart"


class States(IntEnum):
    """State of a connected LG TV."""

    UNKNOWN = 0
    UNAVAILABLE = 1
    OFF = 2
    ON = 3


LG_STATE_MAPPING = {
    States.OFF: MediaStates.OFF,
    States.ON: MediaStates.ON,
    States.UNAVAILABLE: MediaStates.UNAVAILABLE,
    States.UNKNOWN: MediaStates.UNKNOWN,
}

DEFAULT_NAME = "LG TV"

# SSAP endpoint
INSECURE_PORT = 3000
SECURE_PORT = 3001

# Canonical attribute keys
NS = "x_lgtv"
ATTR_POWER = "power_switch.state"
ATTR_TOGGLE = "toggle.state"
ATTR_VOLUME = "volume.level"
ATTR_MUTED = "muting.state"
ATTR_ONLINE = f"{NS}.online"
ATTR_OUTPUT = f"{NS}.output"
ATTR_INPUT = f"{NS}.input"
ATTR_CHANNEL = f"{NS}.channelid"

OFFLINE_ATTRIBUTES = {
    ATTR_POWER: False,
    ATTR_TOGGLE: False,
    ATTR_ONLINE: False,
}
ONLINE_ATTRIBUTES = {
    ATTR_POWER: True,
    ATTR_TOGGLE: True,
    ATTR_ONLINE: True,
}


class Uri(StrEnum):
    """SSAP request and subscription endpoints."""

    TURN_ON = "ssap://system/turnOn"
    TURN_OFF = "ssap://system/turnOff"
    GET_VOLUME = "ssap://audio/getVolume"
    SET_VOLUME = "ssap://audio/setVolume"
    VOLUME_UP = "ssap://audio/volumeUp"
    VOLUME_DOWN = "ssap://audio/volumeDown"
    SET_MUTE = "ssap://audio/setMute"
    CREATE_TOAST = "ssap://system.notifications/createToast"
    FOREGROUND_APP = "ssap://com.webos.applicationManager/getForegroundAppInfo"
    CURRENT_CHANNEL = "ssap://tv/getCurrentChannel"


LIVE_TV_APP_ID = "com.webos.app.livetv"

# Timings, milliseconds
CHANNEL_SETTLE_DELAY = 3000
VOLUME_DEBOUNCE_WINDOW = 2000

# Relative step used for the media-player volume up/down buttons
VOLUME_STEP = 0.01

PAIRING_WARNING = (
    "LG TV needs your authorization to run: check your TV and approve the request"
)
