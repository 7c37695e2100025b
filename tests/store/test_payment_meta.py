from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

from batchimport.common.time import FixedClock
from batchimport.domain.payments.models import Payment
from batchimport.infra.store.bundle import openStore
from batchimport.infra.store.meta_repository import SqlitePaymentMetaRepository, sanitize_object_id


def _meta(tmp_path: Path) -> tuple[SqlitePaymentMetaRepository, int]:
    store = openStore(str(tmp_path), FixedClock(datetime(2024, 3, 1, 12, 0, 0)))
    payment_id = store.payments.save(Payment(total=Decimal("1.00")))
    return store.meta, payment_id


def test_add_meta_with_empty_key_fails(tmp_path):
    meta, pid = _meta(tmp_path)
    assert meta.add_meta(pid, "", "") is None


def test_add_meta_with_empty_value_is_stored(tmp_path):
    meta, pid = _meta(tmp_path)
    assert meta.add_meta(pid, "test_key", "")
    assert meta.get_meta(pid, "test_key", True) == ""


def test_add_unique_refuses_existing(tmp_path):
    meta, pid = _meta(tmp_path)
    assert meta.add_meta(pid, "k", "1", unique=True)
    assert meta.add_meta(pid, "k", "2", unique=True) is None
    assert meta.get_meta(pid, "k") == ["1"]


def test_update_meta_adds_when_absent_and_reports_noop(tmp_path):
    meta, pid = _meta(tmp_path)
    assert meta.update_meta(pid, "", "") is False
    assert meta.update_meta(pid, "test_key_2", "1") is True
    assert meta.update_meta(pid, "test_key_2", "1") is False
    assert meta.update_meta(pid, "test_key_2", "2") is True
    assert meta.get_meta(pid, "test_key_2", True) == "2"


def test_update_with_prev_value(tmp_path):
    meta, pid = _meta(tmp_path)
    meta.add_meta(pid, "tag", "a")
    meta.add_meta(pid, "tag", "b")

    assert meta.update_meta(pid, "tag", "c", prev_value="b") is True
    assert meta.get_meta(pid, "tag") == ["a", "c"]


def test_get_meta_without_key_returns_all(tmp_path):
    meta, pid = _meta(tmp_path)
    assert meta.get_meta(pid) == {}
    meta.add_meta(pid, "a", 1)
    meta.add_meta(pid, "a", 2)
    meta.add_meta(pid, "b", {"x": 1})

    assert meta.get_meta(pid) == {"a": [1, 2], "b": [{"x": 1}]}


def test_get_missing_key(tmp_path):
    meta, pid = _meta(tmp_path)
    assert meta.get_meta(pid, "key_that_does_not_exist", True) == ""
    assert meta.get_meta(pid, "key_that_does_not_exist") == []


def test_delete_meta(tmp_path):
    meta, pid = _meta(tmp_path)
    meta.update_meta(pid, "test_key", "1")

    assert meta.delete_meta(pid, "test_key") is True
    assert meta.delete_meta(pid, "key_that_does_not_exist") is False


def test_delete_by_value(tmp_path):
    meta, pid = _meta(tmp_path)
    meta.add_meta(pid, "tag", "a")
    meta.add_meta(pid, "tag", "b")

    assert meta.delete_meta(pid, "tag", "a") is True
    assert meta.get_meta(pid, "tag") == ["b"]


@pytest.mark.parametrize("object_id", [0, -3, "abc", None, True, 1.5])
def test_invalid_object_id(tmp_path, object_id):
    meta, _pid = _meta(tmp_path)
    assert sanitize_object_id(object_id) is None
    assert meta.get_meta(object_id, "k") is False
    assert meta.add_meta(object_id, "k", "v") is None
    assert meta.update_meta(object_id, "k", "v") is False
    assert meta.delete_meta(object_id, "k") is False


def test_sanitize_object_id_accepts_numeric_strings():
    assert sanitize_object_id("12") == 12
    assert sanitize_object_id(7) == 7
