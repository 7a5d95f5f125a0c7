from __future__ import annotations

import re
import threading

import pytest

from invbill.apps.accounts.otp import OTPCheck, OTPRegistry, ReadWriteLock, generate_otp


def test_generate_otp_is_six_zero_padded_digits(monkeypatch):
    from invbill.apps.accounts import otp

    monkeypatch.setattr(otp.secrets, "randbelow", lambda n: 42)
    assert generate_otp() == "000042"

    monkeypatch.setattr(otp.secrets, "randbelow", lambda n: n - 1)
    assert generate_otp() == "999999"


def test_generate_otp_samples_match_format():
    for _ in range(200):
        assert re.fullmatch(r"\d{6}", generate_otp())


def test_consume_check_outcomes():
    registry = OTPRegistry()

    assert registry.consume_check("alice", "123456") is OTPCheck.NOT_FOUND

    registry.stage("alice", "123456")
    assert registry.consume_check("alice", "123456") is OTPCheck.MATCH
    assert registry.consume_check("alice", "654321") is OTPCheck.MISMATCH
    assert registry.consume_check("bob", "123456") is OTPCheck.NOT_FOUND


def test_consume_check_does_not_remove_entry():
    registry = OTPRegistry()
    registry.stage("alice", "123456")

    registry.consume_check("alice", "000000")
    registry.consume_check("alice", "123456")

    assert registry.get("alice") == "123456"
    assert "alice" in registry


def test_stage_overwrites_previous_code():
    registry = OTPRegistry()
    registry.stage("alice", "111111")
    registry.stage("alice", "222222")

    assert len(registry) == 1
    assert registry.consume_check("alice", "111111") is OTPCheck.MISMATCH
    assert registry.consume_check("alice", "222222") is OTPCheck.MATCH


def test_discard_only_removes_matching_code():
    registry = OTPRegistry()
    registry.stage("alice", "111111")

    assert registry.discard("alice", "999999") is False
    assert registry.get("alice") == "111111"

    assert registry.discard("alice", "111111") is True
    assert registry.get("alice") is None
    assert registry.discard("alice") is False


def test_clear_empties_registry():
    registry = OTPRegistry()
    registry.stage("alice", "111111")
    registry.stage("bob", "222222")

    registry.clear()

    assert len(registry) == 0


def test_ttl_expiry_reads_as_not_found():
    now = [0.0]
    registry = OTPRegistry(ttl_seconds=30, clock=lambda: now[0])
    registry.stage("alice", "123456")

    now[0] = 30.0
    assert registry.consume_check("alice", "123456") is OTPCheck.MATCH

    now[0] = 30.5
    assert registry.consume_check("alice", "123456") is OTPCheck.NOT_FOUND
    assert registry.get("alice") is None


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        OTPRegistry(ttl_seconds=0)


def test_concurrent_stages_leave_single_uncorrupted_entry():
    registry = OTPRegistry()
    codes = [f"{i:06d}" for i in range(50)]
    barrier = threading.Barrier(len(codes))

    def _stage(code):
        barrier.wait()
        registry.stage("alice", code)

    threads = [threading.Thread(target=_stage, args=(c,)) for c in codes]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(registry) == 1
    assert registry.get("alice") in codes


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    first_in = threading.Event()
    second_in = threading.Event()

    def _first():
        with lock.read():
            first_in.set()
            second_in.wait(timeout=2)

    t = threading.Thread(target=_first)
    t.start()
    assert first_in.wait(timeout=2)

    with lock.read():
        second_in.set()
    t.join(timeout=2)

    assert second_in.is_set()
    assert not t.is_alive()


def test_writer_waits_for_readers():
    lock = ReadWriteLock()
    reader_in = threading.Event()
    release_reader = threading.Event()
    writer_done = threading.Event()

    def _reader():
        with lock.read():
            reader_in.set()
            release_reader.wait(timeout=2)

    def _writer():
        with lock.write():
            writer_done.set()

    r = threading.Thread(target=_reader)
    r.start()
    assert reader_in.wait(timeout=2)

    w = threading.Thread(target=_writer)
    w.start()
    assert not writer_done.wait(timeout=0.1)

    release_reader.set()
    assert writer_done.wait(timeout=2)
    r.join(timeout=2)
    w.join(timeout=2)
