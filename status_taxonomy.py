"""
Status taxonomy for monitored onion services.

Stored statuses are plain strings ("online", "offline", "unknown" or
"error-<code>"). Consumers should go through classify() and work with the
returned variant instead of testing string prefixes themselves.
"""

from dataclasses import dataclass
from typing import Union

from errors import UnrecognizedStatus

ONLINE = "online"
OFFLINE = "offline"
UNKNOWN = "unknown"
ERROR_PREFIX = "error-"


@dataclass(frozen=True)
class Online:
    color = "green"
    label = "Online"


@dataclass(frozen=True)
class Offline:
    color = "red"
    label = "Offline"


@dataclass(frozen=True)
class Unknown:
    color = "gray"
    label = "Unknown"


@dataclass(frozen=True)
class ErrorWithCode:
    """A service that answered with an error, e.g. an HTTP 5xx."""
    code: str

    color = "orange"

    @property
    def label(self) -> str:
        return f"Error {self.code}"


DisplayClass = Union[Online, Offline, Unknown, ErrorWithCode]


def is_recognized(status: str) -> bool:
    if status in (ONLINE, OFFLINE, UNKNOWN):
        return True
    return status.startswith(ERROR_PREFIX) and len(status) > len(ERROR_PREFIX)


def classify(status: str, strict: bool = False) -> DisplayClass:
    """
    Maps a raw status string onto its display class.

    Unrecognised values degrade to Unknown unless strict is set, in which
    case UnrecognizedStatus is raised instead.

    Args:
        status (str): The stored status string.
        strict (bool): Raise for values outside the taxonomy.

    Returns:
        DisplayClass: Online, Offline, ErrorWithCode or Unknown.
    """
    if status == ONLINE:
        return Online()
    if status == OFFLINE:
        return Offline()
    if status.startswith(ERROR_PREFIX) and len(status) > len(ERROR_PREFIX):
        return ErrorWithCode(code=status[len(ERROR_PREFIX):])
    if strict and status != UNKNOWN:
        raise UnrecognizedStatus(f"Unrecognized service status: {status!r}")
    return Unknown()


def color_for(status: str) -> str:
    return classify(status).color


def label_for(status: str) -> str:
    return classify(status).label


def status_from_http_code(code: int) -> str:
    """
    Converts the HTTP status a probe received into a stored status.

    Any answer below 500 (including 4xx such as 405) means the service
    responded, so it counts as online. 5xx answers are kept with their code.
    Zero or other values mean no usable response.
    """
    if 200 <= code < 500:
        return ONLINE
    if code >= 500:
        return f"{ERROR_PREFIX}{code}"
    return OFFLINE
