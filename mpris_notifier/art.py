"""
Album art fetching.

Art is read from file:// URLs or downloaded from http(s):// URLs, then
thumbnailed into the raw pixel format of the notification `image-data` hint.
"""

import http.client
import io
import os
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field

from PIL import Image

from . import __version__

ART_SIZE_LIMIT = 5_000_000  # ~5MB download size limit
THUMBNAIL_SIZE = 256  # generate <size> * <size> notification icons
CHUNK_SIZE = 64 * 1024
USER_AGENT = f"mpris-notifier/{__version__}"


class ArtFetchError(Exception):
    """Raised when album art can't be fetched or decoded"""


# See: https://specifications.freedesktop.org/notification-spec/latest/icons-and-images.html
@dataclass(frozen=True)
class NotificationImage:
    width: int
    height: int
    rowstride: int
    has_alpha: bool
    bits_per_sample: int
    channels: int
    data: bytes = field(repr=False)

    @classmethod
    def from_image(cls, image: Image.Image) -> "NotificationImage":
        """Convert an RGB or RGBA Pillow image"""
        channels = 4 if image.mode == 'RGBA' else 3
        return cls(
            width=image.width,
            height=image.height,
            rowstride=image.width * channels,
            has_alpha=channels == 4,
            bits_per_sample=8,
            channels=channels,
            data=image.tobytes(),
        )


def _set_socket_timeout(response, seconds: float):
    # http.client.HTTPResponse.fp is a BufferedReader over socket.SocketIO
    raw = getattr(response.fp, 'raw', None)
    sock = getattr(raw, '_sock', None)
    if sock is not None:
        sock.settimeout(seconds)


class ArtFetcher:
    """Fetches album art within the configured deadline"""

    def __init__(self, configuration):
        # seconds
        self.timeout = configuration.album_art_deadline / 1000.0

    def get_album_art(self, url: str) -> NotificationImage:
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme == 'file':
            body = self._read_file(parsed)
        elif parsed.scheme in ('http', 'https'):
            body = self._fetch_url(url)
        else:
            raise ArtFetchError(f"unsupported album art URL '{url}'")
        return self._decode(body)

    def _read_file(self, parsed: urllib.parse.ParseResult) -> bytes:
        path = urllib.request.url2pathname(parsed.path)
        try:
            size = os.path.getsize(path)
            if size > ART_SIZE_LIMIT:
                raise ArtFetchError(f"album art at {path} is too large ({size} bytes)")
            with open(path, 'rb') as f:
                return f.read()
        except OSError as e:
            raise ArtFetchError(f"error reading {path}: {e}") from e

    def _fetch_url(self, url: str) -> bytes:
        deadline = time.monotonic() + self.timeout
        req = urllib.request.Request(url, headers={'User-Agent': USER_AGENT})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                length = response.headers.get('Content-Length')
                if length is None or not length.strip().isdigit():
                    raise ArtFetchError(f"invalid response from {url}: missing Content-Length")
                if int(length) > ART_SIZE_LIMIT:
                    raise ArtFetchError(f"album art at {url} is too large ({length} bytes)")

                chunks = []
                received = 0
                while received < ART_SIZE_LIMIT:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise ArtFetchError(f"deadline exceeded fetching {url}")
                    # Each recv may only wait for what is left of the deadline
                    _set_socket_timeout(response, max(remaining, 0.001))
                    # read1() returns after a single recv, read(n) waits for all n bytes
                    chunk = response.read1(min(CHUNK_SIZE, ART_SIZE_LIMIT - received))
                    if not chunk:
                        break
                    chunks.append(chunk)
                    received += len(chunk)
                return b"".join(chunks)
        except (OSError, http.client.HTTPException, ValueError) as e:
            # urllib.error.URLError and socket timeouts are OSErrors
            raise ArtFetchError(f"error fetching {url}: {e}") from e

    def _decode(self, body: bytes) -> NotificationImage:
        try:
            with Image.open(io.BytesIO(body)) as image:
                image.thumbnail((THUMBNAIL_SIZE, THUMBNAIL_SIZE))
                has_alpha = 'A' in image.getbands() or 'transparency' in image.info
                converted = image.convert('RGBA' if has_alpha else 'RGB')
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise ArtFetchError(f"error decoding image: {e}") from e
        return NotificationImage.from_image(converted)
