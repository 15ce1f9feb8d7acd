import json
import signal

import pytest

from solar_relay import cli
from solar_relay import orchestrator as orchestrator_module
from solar_relay.feeds import KP_INDEX, MAGNETOMETER, PLASMA, PROBABILITIES
from solar_relay.relay import Relay

from conftest import FakeFetcher, table


@pytest.fixture
def offline(monkeypatch, sockets, tmp_path):
    for name in ("SOLAR_RELAY_CONFIG", "SOLAR_RELAY_DESTINATIONS", "SOLAR_RELAY_INTERVAL", "SOLAR_RELAY_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)

    fetcher = FakeFetcher()
    fetcher.queue(PLASMA.url, table(["2024-01-01T00:00Z", "4.2", "430.1", "75000"]))
    fetcher.queue(PROBABILITIES.url, json.dumps([{"m_class_1_day": 35, "x_class_1_day": 5}]))
    fetcher.queue(MAGNETOMETER.url, table(["t", "1", "2", "-3.5", "181.25", "10", "7.125"]))
    fetcher.queue(KP_INDEX.url, table(["t", "4.33"]))

    monkeypatch.setattr(orchestrator_module, "HttpFetcher", lambda **kwargs: fetcher)
    monkeypatch.setattr(orchestrator_module, "Relay", lambda: Relay(socket_factory=sockets))

    handlers = {}
    monkeypatch.setattr(cli.signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))

    config = tmp_path / "relay.yml"
    config.write_text("pacing: 0\n", encoding="utf-8")
    return {"fetcher": fetcher, "handlers": handlers, "config": str(config)}


def test_once_runs_one_cycle_and_reports(offline, sockets, capsys):
    status = cli.main(["--config", offline["config"], "--once", "--dest", "127.0.0.1:7000"])

    out = capsys.readouterr().out
    assert status == 0
    assert "Sending data to: 127.0.0.1:7000" in out
    assert "SOLAR DATA UPDATE" in out
    assert "The program terminated correctly." in out
    assert len(offline["fetcher"].calls) == 4
    assert {dest for dest, _ in sockets.sent} == {("127.0.0.1", 7000)}
    assert len(sockets.sent) == 9


def test_quiet_suppresses_the_report(offline, capsys):
    status = cli.main(["--config", offline["config"], "--once", "--quiet"])

    out = capsys.readouterr().out
    assert status == 0
    assert "SOLAR DATA UPDATE" not in out


def test_signal_handlers_request_a_stop(offline, capsys):
    cli.main(["--config", offline["config"], "--once", "--quiet"])

    assert set(offline["handlers"]) == {signal.SIGINT, signal.SIGTERM}


def test_handler_stops_the_orchestrator(monkeypatch, capsys):
    handlers = {}
    monkeypatch.setattr(cli.signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))

    class Dummy:
        stopped = False

        def stop(self):
            self.stopped = True

    dummy = Dummy()
    cli.install_signal_handlers(dummy)
    handlers[signal.SIGTERM](signal.SIGTERM, None)

    assert dummy.stopped
    assert "Termination signal received" in capsys.readouterr().out


def test_bad_destination_exits_with_error(offline, capsys):
    status = cli.main(["--config", offline["config"], "--once", "--dest", "nowhere"])

    assert status == 2
    assert "ERROR:" in capsys.readouterr().err
