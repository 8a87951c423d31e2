"""Errors raised inside the LG TV integration."""

import errno

# Transport errors that are expected while the TV sleeps or roams off the network.
_SOFT_ERRNOS = {errno.EHOSTUNREACH, errno.ETIMEDOUT}


class LgTvError(Exception):
    """Base class for LG TV integration errors."""


class ConfigurationError(LgTvError):
    """The device configuration is unusable, e.g. no host configured."""


class ActionPreconditionError(LgTvError):
    """An action was requested without the parameters it needs."""


class TransportError(LgTvError):
    """The connection to the TV failed or was lost."""

    soft = False

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class SoftTransportError(TransportError):
    """Expected network noise: host unreachable or connection timeout."""

    soft = True


class HardTransportError(TransportError):
    """Any other failure reported by the transport."""


def classify_transport_error(err: BaseException) -> TransportError:
    """Wrap a raw transport exception into a soft or hard TransportError."""
    if isinstance(err, TransportError):
        return err
    if isinstance(err, TimeoutError):
        return SoftTransportError("connection timed out", err)
    if isinstance(err, OSError) and err.errno in _SOFT_ERRNOS:
        return SoftTransportError(errno.errorcode[err.errno], err)
    # aiohttp wraps the OSError of a failed connect
    os_errno = getattr(err, "os_error", None)
    if isinstance(os_errno, OSError) and os_errno.errno in _SOFT_ERRNOS:
        return SoftTransportError(errno.errorcode[os_errno.errno], err)
    return HardTransportError(str(err) or type(err).__name__, err)
