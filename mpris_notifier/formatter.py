"""Notification text formatting: `{token}` substitution against track metadata."""

import re
from typing import Optional, Sequence

from .mpris import PlayerMetadata

FORMAT_REGEX = re.compile(r"\{[^}]+\}")

DEFAULT_TRACK_NUMBER = 1


def _join(entries: Optional[Sequence[str]], join_string: str) -> str:
    if entries is None:
        return ""
    return join_string.join(entries)


def format_metadata(template: str, metadata: PlayerMetadata, join_string: str) -> str:
    """
    Render `template` against `metadata`.

    Recognized tokens: {album}, {album_artists}/{album_artist},
    {artists}/{artist}, {title}/{track} and {track_number}. Multi-valued
    fields are joined with `join_string`. Unrecognized tokens are left as-is.
    """
    def replace(match: re.Match) -> str:
        token = match.group(0)
        if token == "{album}":
            return metadata.album or ""
        if token in ("{album_artists}", "{album_artist}"):
            return _join(metadata.album_artists, join_string)
        if token in ("{artists}", "{artist}"):
            return _join(metadata.artists, join_string)
        if token in ("{title}", "{track}"):
            return metadata.title or ""
        if token == "{track_number}":
            number = metadata.track_number
            return str(DEFAULT_TRACK_NUMBER if number is None else number)
        return token

    return FORMAT_REGEX.sub(replace, template)
