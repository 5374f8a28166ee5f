"""Shared fixtures."""

import pytest

from mpris_notifier import log as log_module
from mpris_notifier.art import ArtFetchError, NotificationImage
from mpris_notifier.configuration import Configuration

from fakes import FakeArtFetcher, FakeClock, FakeConnection, RecordingNotifier, mpris_signal


@pytest.fixture(autouse=True)
def no_log_file(monkeypatch):
    """Keep test runs from appending to /tmp/mpris-notifier.log"""
    monkeypatch.setattr(log_module, "_log_file", None)


@pytest.fixture
def make_signal():
    return mpris_signal


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def configuration():
    return Configuration()


@pytest.fixture
def image():
    return NotificationImage(
        width=2, height=1, rowstride=6, has_alpha=False,
        bits_per_sample=8, channels=3, data=bytes(range(6)),
    )


@pytest.fixture
def art_fetcher(image):
    return FakeArtFetcher(image=image)


@pytest.fixture
def failing_art_fetcher():
    return FakeArtFetcher(error=ArtFetchError("deadline exceeded fetching https://example.com/a.jpg"))
