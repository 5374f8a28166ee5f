"""
Sends XDG desktop notifications via org.freedesktop.Notifications.Notify

See: https://specifications.freedesktop.org/notification-spec/latest/protocol.html
"""

from typing import Optional

import dbus
import dbus.lowlevel

from .art import NotificationImage
from .formatter import format_metadata
from .log import log
from .mpris import PlayerMetadata

NOTIFICATION_NAMESPACE = 'org.freedesktop.Notifications'
NOTIFICATION_OBJECTPATH = '/org/freedesktop/Notifications'
NOTIFICATION_METHOD = 'Notify'
NOTIFICATION_SOURCE = 'mpris-notifier'

# app_name, replaces_id, app_icon, summary, body, actions, hints, expire_timeout
NOTIFY_SIGNATURE = 'susssasa{sv}i'
IMAGE_DATA_SIGNATURE = 'iiibiiay'

SYNCHRONOUS_HINT = 'x-canonical-private-synchronous'
IMAGE_DATA_HINT = 'image-data'
EXPIRE_SERVER_DEFAULT = -1


def build_image_data(image: NotificationImage) -> dbus.Struct:
    """The `image-data` hint struct: (width, height, rowstride, has_alpha, bits_per_sample, channels, data)"""
    return dbus.Struct(
        (
            dbus.Int32(image.width),
            dbus.Int32(image.height),
            dbus.Int32(image.rowstride),
            dbus.Boolean(image.has_alpha),
            dbus.Int32(image.bits_per_sample),
            dbus.Int32(image.channels),
            dbus.ByteArray(image.data),
        ),
        signature=IMAGE_DATA_SIGNATURE,
    )


def build_hints(album_art: Optional[NotificationImage] = None) -> dbus.Dictionary:
    """Hints dict (a{sv}); replaces any earlier mpris-notifier popup instead of stacking"""
    hints = {SYNCHRONOUS_HINT: dbus.String(NOTIFICATION_SOURCE)}
    if album_art is not None:
        hints[IMAGE_DATA_HINT] = build_image_data(album_art)
    return dbus.Dictionary(hints, signature='sv')


def build_notify_message(subject: str, body: str,
                         album_art: Optional[NotificationImage] = None) -> dbus.lowlevel.MethodCallMessage:
    message = dbus.lowlevel.MethodCallMessage(
        NOTIFICATION_NAMESPACE,
        NOTIFICATION_OBJECTPATH,
        NOTIFICATION_NAMESPACE,
        NOTIFICATION_METHOD,
    )
    message.append(
        NOTIFICATION_SOURCE,  # app name
        dbus.UInt32(0),  # replaces id
        '',  # icon
        subject,  # summary
        body,
        dbus.Array([], signature='s'),  # actions
        build_hints(album_art),
        dbus.Int32(EXPIRE_SERVER_DEFAULT),
        signature=NOTIFY_SIGNATURE,
    )
    # The notification id reply is not used
    message.set_no_reply(True)
    return message


class Notifier:
    """Formats pending notifications and sends them over D-Bus"""

    def __init__(self, configuration):
        self.configuration = configuration

    def format_subject(self, metadata: PlayerMetadata) -> str:
        return format_metadata(self.configuration.subject_format, metadata, self.configuration.join_string)

    def format_body(self, metadata: PlayerMetadata) -> str:
        return format_metadata(self.configuration.body_format, metadata, self.configuration.join_string)

    def send_notification(self, notification, connection) -> bool:
        """
        Send one Notify call for a pending notification.

        Returns False without sending anything when both subject and body
        render blank.
        """
        subject = self.format_subject(notification.metadata)
        body = self.format_body(notification.metadata)
        if not subject.strip() and not body.strip():
            log(f"[Notify] Skipping empty notification from {notification.sender}")
            return False

        message = build_notify_message(subject, body, notification.album_art)
        connection.send_message(message)
        art = " (with album art)" if notification.album_art is not None else ""
        log(f"[Notify] → {subject!r} / {body!r}{art}")
        return True
