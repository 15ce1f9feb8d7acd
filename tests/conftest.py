import json
import sys
from pathlib import Path

import pytest


BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from solar_relay.cache import FieldCache  # noqa: E402
from solar_relay.relay import Destination, Relay  # noqa: E402


def decode(data):
    tag_at = data.index(b",s\0\0")
    return data[:tag_at].rstrip(b"\0").decode(), data[tag_at + 4:].rstrip(b"\0").decode()


class FakeSocket:
    def __init__(self, outbox, fail_for=()):
        self.outbox = outbox
        self.fail_for = set(fail_for)
        self.closed = False

    def sendto(self, data, address):
        if address in self.fail_for:
            raise OSError(f"unreachable {address}")
        self.outbox.append((address, bytes(data)))
        return len(data)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class SocketRecorder:
    """Socket factory that records every datagram instead of sending it."""

    def __init__(self):
        self.sent = []
        self.sockets = []
        self.fail_for = set()

    def __call__(self):
        sock = FakeSocket(self.sent, self.fail_for)
        self.sockets.append(sock)
        return sock

    def messages(self):
        """(destination, address, argument) triples in send order."""
        return [(dest, *decode(data)) for dest, data in self.sent]

    def addresses(self):
        return [address for _, address, _ in self.messages()]

    def arguments(self, address):
        return [arg for _, addr, arg in self.messages() if addr == address]


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)

    @property
    def total(self):
        return sum(self.calls)


class FakeFetcher:
    """Returns queued bodies per URL; an exhausted or unknown URL yields ''."""

    def __init__(self, bodies=None):
        self.bodies = {url: list(items) for url, items in (bodies or {}).items()}
        self.calls = []

    def queue(self, url, *bodies):
        self.bodies.setdefault(url, []).extend(bodies)

    def __call__(self, url):
        self.calls.append(url)
        queued = self.bodies.get(url) or []
        return queued.pop(0) if queued else ""


DESTINATIONS = (Destination("127.0.0.1", 6000), Destination("127.0.0.1", 6001))


def table(*rows):
    return json.dumps([["time_tag", "a", "b", "c", "d", "e", "f"], *rows])


@pytest.fixture
def sockets():
    return SocketRecorder()


@pytest.fixture
def relay(sockets):
    return Relay(socket_factory=sockets)


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def cache():
    return FieldCache()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def destinations():
    return DESTINATIONS
