"""
Session bus connection.

Signals are received through dbus-python's GLib main loop integration, but
instead of handing the thread to GLib.MainLoop.run() the default main context
is iterated from `next_signal`, so the caller keeps a simple poll loop:
receive (bounded by a timeout), handle, check timers, repeat.
"""

import time
from collections import deque
from typing import Deque, Optional

import dbus
import dbus.exceptions
import dbus.lowlevel
from dbus.mainloop.glib import DBusGMainLoop
from gi.repository import GLib

from .log import log

POLLING_TIMEOUT = 0.25  # seconds

LOCAL_INTERFACE = 'org.freedesktop.DBus.Local'
LOCAL_PATH = '/org/freedesktop/DBus/Local'


class DBusError(Exception):
    """Connection, subscription or transport failure"""


class DBusConnection:
    def __init__(self, bus):
        self.bus = bus
        self.context = GLib.MainContext.default()
        self.signals: Deque[dbus.lowlevel.SignalMessage] = deque()
        self.disconnected = False

    @classmethod
    def connect(cls) -> "DBusConnection":
        """Connect to the session bus"""
        try:
            DBusGMainLoop(set_as_default=True)
            bus = dbus.SessionBus()
            bus.set_exit_on_disconnect(False)
            connection = cls(bus)
            bus.add_signal_receiver(
                connection._on_disconnected,
                dbus_interface=LOCAL_INTERFACE,
                signal_name='Disconnected',
                path=LOCAL_PATH,
            )
        except dbus.exceptions.DBusException as e:
            raise DBusError(f"error connecting to session bus: {e}") from e

        log(f"[DBus] ✓ Connected to session bus as {bus.get_unique_name()}")
        return connection

    def subscribe(self, interface: str, member: str, path: str):
        """Add a match rule and queue every matching signal for next_signal()"""
        try:
            self.bus.add_signal_receiver(
                self._on_signal,
                dbus_interface=interface,
                signal_name=member,
                path=path,
                message_keyword='message',
            )
        except dbus.exceptions.DBusException as e:
            raise DBusError(f"error subscribing to {interface}.{member} on {path}: {e}") from e
        log(f"[DBus] Subscribed: interface='{interface}',member='{member}',path='{path}'")

    def _on_signal(self, *args, message=None):
        if message is not None:
            self.signals.append(message)

    def _on_disconnected(self, *args):
        log("[DBus] ✗ Disconnected from session bus")
        self.disconnected = True

    def next_signal(self, timeout: float = POLLING_TIMEOUT) -> Optional[dbus.lowlevel.SignalMessage]:
        """
        Block until the next subscribed signal arrives or `timeout` passes.
        Returns None on timeout. Once the bus is gone every call waits out
        `timeout` before raising, so a caller that keeps polling does not spin.
        """
        if self.disconnected:
            time.sleep(timeout)
            raise DBusError("session bus connection closed")
        if not self.signals:
            self._wait(timeout)
        if self.signals:
            return self.signals.popleft()
        if self.disconnected:
            raise DBusError("session bus connection closed")
        return None

    def _wait(self, timeout: float):
        timed_out = []

        def on_timeout():
            timed_out.append(True)
            return GLib.SOURCE_REMOVE

        source_id = GLib.timeout_add(int(timeout * 1000), on_timeout)
        try:
            while not self.signals and not timed_out and not self.disconnected:
                self.context.iteration(True)
        finally:
            if not timed_out:
                GLib.source_remove(source_id)

    def send_message(self, message: dbus.lowlevel.Message):
        try:
            self.bus.send_message(message)
        except dbus.exceptions.DBusException as e:
            raise DBusError(f"error sending {message.get_member()}: {e}") from e
