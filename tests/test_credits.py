"""Tests for the credit ledgers."""

from __future__ import annotations

import threading

import pytest

from enclosureai.credits import FREE_CREDITS, MemoryCredits, SQLiteCredits


@pytest.fixture(params=["memory", "sqlite"])
def ledger(request, tmp_path):
    if request.param == "memory":
        yield MemoryCredits(free_credits=3)
    else:
        db = SQLiteCredits(tmp_path / "credits.sqlite", free_credits=3)
        yield db
        db.close()


def test_new_user_gets_free_credits(ledger):
    assert ledger.get_credits("alice") == 3


def test_deduct_until_empty(ledger):
    assert [ledger.deduct_credit("alice") for _ in range(4)] == [True, True, True, False]
    assert ledger.get_credits("alice") == 0
    assert ledger.get_credits("bob") == 3


def test_concurrent_deductions_never_go_negative(ledger):
    results: list[bool] = []
    lock = threading.Lock()

    def spend():
        ok = ledger.deduct_credit("alice")
        with lock:
            results.append(ok)

    threads = [threading.Thread(target=spend) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results.count(True) == 3
    assert ledger.get_credits("alice") == 0


def test_default_allowance():
    assert MemoryCredits().get_credits("x") == FREE_CREDITS
    db = SQLiteCredits(":memory:")
    try:
        assert db.get_credits("x") == FREE_CREDITS
    finally:
        db.close()


def test_sqlite_persists(tmp_path):
    path = tmp_path / "nested" / "credits.sqlite"
    db = SQLiteCredits(path, free_credits=2)
    db.deduct_credit("alice")
    db.close()

    reopened = SQLiteCredits(path, free_credits=2)
    try:
        assert reopened.get_credits("alice") == 1
    finally:
        reopened.close()
