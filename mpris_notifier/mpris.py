"""
MPRIS player state, and decoding of MPRIS PropertiesChanged signals.

Signals arrive as dbus-python messages whose values are dbus types
(dbus.String, dbus.Array, dbus.UInt32, dbus.Dictionary, ...). Those all
subclass the matching Python builtins, so decoding only relies on builtin
isinstance checks and every decoded value is copied into a plain Python type.
"""

import enum
from dataclasses import dataclass
from typing import Optional, Tuple

MPRIS_INTERFACE = 'org.mpris.MediaPlayer2.Player'
MPRIS_PATH = '/org/mpris/MediaPlayer2'
PROPERTIES_INTERFACE = 'org.freedesktop.DBus.Properties'
PROPERTIES_CHANGED = 'PropertiesChanged'


class DecodeError(Exception):
    """Raised for signals that are not MPRIS player property changes"""


class PlayerStatus(enum.Enum):
    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"

    @classmethod
    def parse(cls, value: str) -> "PlayerStatus":
        """Parse an MPRIS PlaybackStatus string, raising ValueError for anything unknown"""
        # Case-sensitive: "Playing", "Paused", "Stopped"
        return cls(value)


@dataclass(frozen=True)
class PlayerMetadata:
    """Track metadata reported by a player. Every field is optional."""
    track_id: Optional[str] = None
    album: Optional[str] = None
    album_artists: Optional[Tuple[str, ...]] = None
    art_url: Optional[str] = None
    artists: Optional[Tuple[str, ...]] = None
    title: Optional[str] = None
    track_number: Optional[int] = None
    track_url: Optional[str] = None


@dataclass(frozen=True)
class PropertiesChange:
    """One decoded PropertiesChanged signal"""
    status: Optional[PlayerStatus] = None
    metadata: Optional[PlayerMetadata] = None


# Wire value shapes
def _as_string(value) -> Optional[str]:
    # dbus.ObjectPath (mpris:trackid) is a str subclass too
    if isinstance(value, str):
        return str(value)
    return None


def _as_string_list(value) -> Optional[Tuple[str, ...]]:
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return tuple(str(v) for v in value)
    return None


def _as_unsigned(value) -> Optional[int]:
    # dbus.Boolean subclasses int rather than bool
    if isinstance(value, bool) or value.__class__.__name__ == 'Boolean':
        return None
    if isinstance(value, int) and value >= 0:
        return int(value)
    return None


def _as_dict(value) -> Optional[dict]:
    if isinstance(value, dict):
        return value
    return None


# MPRIS metadata key -> (PlayerMetadata field, decoder)
METADATA_FIELDS = {
    'mpris:trackid': ('track_id', _as_string),
    'xesam:album': ('album', _as_string),
    'xesam:albumArtist': ('album_artists', _as_string_list),
    'mpris:artUrl': ('art_url', _as_string),
    'xesam:artist': ('artists', _as_string_list),
    'xesam:title': ('title', _as_string),
    'xesam:trackNumber': ('track_number', _as_unsigned),
    'xesam:url': ('track_url', _as_string),
}


def decode_metadata(inner: dict) -> PlayerMetadata:
    """Decode an MPRIS Metadata map. Fields that fail to decode are left out."""
    fields = {}
    for key, (name, decoder) in METADATA_FIELDS.items():
        if key in inner:
            value = decoder(inner[key])
            if value is not None:
                fields[name] = value
    return PlayerMetadata(**fields)


def decode_properties_change(message) -> PropertiesChange:
    """
    Decode a PropertiesChanged signal message.

    Raises DecodeError when the message has no body or isn't about the
    MPRIS player interface. Everything else degrades to "absent".
    """
    args = message.get_args_list()
    if len(args) < 2:
        raise DecodeError("message has no PropertiesChanged body")

    interface_name = args[0]
    if interface_name != MPRIS_INTERFACE:
        raise DecodeError(f"wrong interface type '{interface_name}'")

    outer = _as_dict(args[1])
    if outer is None:
        raise DecodeError("changed properties is not a dictionary")

    status = None
    raw_status = _as_string(outer.get('PlaybackStatus'))
    if raw_status is not None:
        try:
            status = PlayerStatus.parse(raw_status)
        except ValueError:
            status = None

    metadata = None
    inner = _as_dict(outer.get('Metadata'))
    if inner is not None:
        metadata = decode_metadata(inner)

    return PropertiesChange(status=status, metadata=metadata)


def subscribe_mpris(connection):
    """Subscribe a DBusConnection to MPRIS player property changes (track changes, play/pause)"""
    connection.subscribe(PROPERTIES_INTERFACE, PROPERTIES_CHANGED, MPRIS_PATH)
