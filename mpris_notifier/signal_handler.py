"""
Turns MPRIS PropertiesChanged signals into (at most) one notification per
track change.

Based on observed player behaviour:
- Players send several PropertiesChanged signals in quick succession while
  filling in metadata (title first, art URL a moment later), so a
  notification is held until NOTIFICATION_DELAY passes without updates
- Metadata is cached per sender (one entry per running player instance)
- A "Playing" status always (re)queues the sender's current track, covering
  both resume and track-advance
- Only one notification is ever pending; a newer one replaces it
"""

import time
from typing import Callable, Dict, List, Optional

from .art import ArtFetchError, NotificationImage
from .commands import Command, build_commands
from .log import log
from .mpris import DecodeError, PlayerMetadata, PlayerStatus, decode_properties_change

# After receiving a track changed signal, the notification is held for this
# period of time (seconds) before being sent, to allow for more changes.
NOTIFICATION_DELAY = 0.25


class SignalHandlerError(Exception):
    """Raised for signals that can't be attributed to a sender"""


class Notification:
    """A notification waiting to be sent"""

    def __init__(self, sender: str, metadata: PlayerMetadata, now: float):
        self.sender = sender
        self.metadata = metadata
        self.album_art: Optional[NotificationImage] = None
        self.last_touched = now

    def __repr__(self):
        return (f"Notification(sender={self.sender!r}, metadata={self.metadata!r}, "
                f"album_art={self.album_art!r}, last_touched={self.last_touched!r})")

    def update(self, metadata: PlayerMetadata, now: float):
        # Art fetched for a different URL no longer belongs to this track
        if metadata.art_url != self.metadata.art_url:
            self.album_art = None
        self.metadata = metadata
        self.last_touched = now

    def attach_album_art(self, album_art: NotificationImage, now: float):
        self.album_art = album_art
        self.last_touched = now


class SignalHandler:
    """
    Holds all notification state: the per-sender metadata cache, the single
    pending notification and the commands to run once it is sent.

    handle_signal() is called for every received signal, handle_pending()
    on every main loop tick.
    """

    def __init__(self, configuration, notifier, art_fetcher=None,
                 clock: Callable[[], float] = time.monotonic):
        self.configuration = configuration
        self.notifier = notifier
        self.art_fetcher = art_fetcher
        self.clock = clock

        # Map from <D-Bus Sender> -> <Last Received Metadata>
        self.metadata: Dict[str, PlayerMetadata] = {}

        # Notification that will be sent once NOTIFICATION_DELAY passes untouched
        self.pending_notification: Optional[Notification] = None

        # Commands that will be called along with the pending notification
        self.pending_commands: List[Command] = []

    def metadata_for(self, sender: str) -> Optional[PlayerMetadata]:
        return self.metadata.get(sender)

    def handle_signal(self, signal):
        """
        Update state from one received signal. Queues a notification but
        never sends it; that is left to handle_pending().
        """
        sender = signal.get_sender()
        if not sender:
            raise SignalHandlerError("Missing sender header")

        # Signals we don't care about are ignored
        try:
            change = decode_properties_change(signal)
        except DecodeError:
            return

        status = change.status.value if change.status else None
        log(f"[Signal] {sender}: status={status} metadata={'yes' if change.metadata else 'no'}")
        now = self.clock()

        # Metadata is cached in its entirety per sender. It updates the
        # pending notification if that is from the same sender, or starts a
        # new one if nothing is pending.
        if change.metadata is not None:
            self.metadata[sender] = change.metadata
            pending = self.pending_notification
            if pending is not None:
                if pending.sender == sender:
                    pending.update(change.metadata, now)
            else:
                self.pending_notification = Notification(sender, change.metadata, now)

        # If we haven't gotten metadata yet, we can't notify
        metadata = self.metadata.get(sender)
        if metadata is None:
            return

        # 'Playing' queues that sender's track (resuming play, or changing
        # tracks); anything else cancels whatever was pending.
        if change.status is not None:
            if change.status == PlayerStatus.PLAYING:
                self.pending_notification = Notification(sender, metadata, now)
            else:
                if self.pending_notification is not None:
                    log(f"[Signal] {sender}: {change.status.value}, dropping pending notification")
                self.pending_notification = None

        pending = self.pending_notification
        if pending is None:
            return

        self._fetch_album_art(pending)

        self.pending_commands = build_commands(self.configuration)

    def _fetch_album_art(self, pending: Notification):
        art_url = pending.metadata.art_url
        if not art_url or self.art_fetcher is None or not self.configuration.enable_album_art:
            return
        # Already fetched for this URL
        if pending.album_art is not None:
            return

        try:
            album_art = self.art_fetcher.get_album_art(art_url)
        except ArtFetchError as e:
            log(f"[Artwork] Warning: error fetching album art for {pending.metadata.title!r}: {e}")
            return

        pending.attach_album_art(album_art, self.clock())
        log(f"[Artwork] Fetched {album_art.width}x{album_art.height} from {art_url[:100]}")

    def handle_pending(self, connection) -> bool:
        """
        Must be called regularly from the main loop. Sends the pending
        notification once it has gone NOTIFICATION_DELAY without updates,
        then runs the pending commands. Returns True when it flushed.
        """
        pending = self.pending_notification
        if pending is None:
            return False
        if self.clock() - pending.last_touched <= NOTIFICATION_DELAY:
            return False

        # Take both out first, a failed send must not flush again next tick
        self.pending_notification = None
        commands, self.pending_commands = self.pending_commands, []

        try:
            self.notifier.send_notification(pending, connection)
        finally:
            for command in commands:
                command.run()
        return True
