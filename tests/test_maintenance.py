"""Tests for the maintenance gate."""

import logging
import threading

from t53upload.uploads.maintenance import MaintenanceGate


def test_gate_starts_open():
    assert MaintenanceGate().is_closed is False


def test_close_and_open():
    gate = MaintenanceGate()

    assert gate.set(True) is True
    assert gate.is_closed is True

    assert gate.set(False) is True
    assert gate.is_closed is False


def test_setting_current_state_is_noop(caplog):
    gate = MaintenanceGate()

    with caplog.at_level(logging.INFO, logger="t53upload.uploads.maintenance"):
        assert gate.set(True) is True
        assert gate.set(True) is False
        assert gate.set(False) is True
        assert gate.set(False) is False

    transitions = [r for r in caplog.records if r.name == "t53upload.uploads.maintenance"]
    assert len(transitions) == 2
    assert "Entering" in transitions[0].getMessage()
    assert "Leaving" in transitions[1].getMessage()


def test_open_gate_open_again_logs_nothing(caplog):
    gate = MaintenanceGate()

    with caplog.at_level(logging.INFO, logger="t53upload.uploads.maintenance"):
        gate.set(False)

    assert not [r for r in caplog.records if r.name == "t53upload.uploads.maintenance"]


def test_concurrent_toggles_report_single_transition():
    gate = MaintenanceGate()
    results = []
    barrier = threading.Barrier(8)

    def close_gate():
        barrier.wait()
        results.append(gate.set(True))

    threads = [threading.Thread(target=close_gate) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert gate.is_closed is True
