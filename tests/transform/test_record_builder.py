from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pathlib import Path

from batchimport.common.time import FixedClock
from batchimport.domain.error_codes import ErrorCode
from batchimport.domain.payments.gateways import GatewayRegistry
from batchimport.domain.payments.models import Operator
from batchimport.domain.transform.coercion import ValueCoercer
from batchimport.domain.transform.entity_resolver import CatalogEntityResolver
from batchimport.domain.transform.field_mapping import FieldMapping
from batchimport.domain.transform.record_builder import BuilderConfig, PaymentRecordBuilder
from batchimport.domain.transform.source_record import SourceRecord
from batchimport.infra.store.bundle import StoreBundle, openStore

NOW = datetime(2024, 3, 1, 12, 0, 0)

MAPPING = {
    "total": "Total",
    "tax": "Tax",
    "subtotal": "Subtotal",
    "status": "Status",
    "email": "Email",
    "customer_id": "Customer",
    "user_id": "User",
    "downloads": "Products",
    "gateway": "Gateway",
    "currency": "Currency",
    "date": "Date",
    "city": "City",
}


def _store(tmp_path: Path) -> StoreBundle:
    return openStore(str(tmp_path / "store"), FixedClock(NOW))


def _builder(store: StoreBundle, mapping: dict | None = None, **config) -> PaymentRecordBuilder:
    coercer = ValueCoercer(clock=FixedClock(NOW), gateways=GatewayRegistry(), users=store.users)
    return PaymentRecordBuilder(
        mapping=FieldMapping.from_dict(mapping or MAPPING),
        coercer=coercer,
        resolver=CatalogEntityResolver(store.catalog, Operator(user_id=1, capabilities=frozenset({"import_payments"}))),
        customers=store.customers,
        store=store.payments,
        meta=store.meta,
        config=BuilderConfig(**config),
    )


def _record(**values) -> SourceRecord:
    return SourceRecord(line_no=2, record_id="line:2", values=values)


def test_subtotal_defaults_to_total_minus_tax(tmp_path):
    store = _store(tmp_path)
    result = _builder(store).build(_record(Total="110.00", Tax="10.00"))

    payment = store.payments.get(result.row.id)
    assert payment.total == Decimal("110.00")
    assert payment.tax == Decimal("10.00")
    assert payment.subtotal == Decimal("100.00")


def test_explicit_subtotal_is_kept(tmp_path):
    store = _store(tmp_path)
    result = _builder(store).build(_record(Total="110.00", Tax="10.00", Subtotal="95.00"))

    assert result.row.subtotal == Decimal("95.00")


def test_status_lowercased_or_pending(tmp_path):
    store = _store(tmp_path)
    builder = _builder(store)

    completed = builder.build(_record(Total="5", Status="Complete"))
    pending = builder.build(_record(Total="5"))

    assert store.payments.get(completed.row.id).status == "complete"
    assert store.payments.get(pending.row.id).status == "pending"


def test_status_set_only_after_first_save(tmp_path):
    store = _store(tmp_path)
    result = _builder(store).build(_record(Total="5", Status="publish"))

    assert store.payments.status_log(result.row.id) == [(None, "pending"), ("pending", "publish")]


def test_two_products_split_no_tax(tmp_path):
    store = _store(tmp_path)
    store.catalog.upsert_price("Ebook A", Decimal("50.00"))
    result = _builder(store).build(_record(Total="110.00", Tax="10.00", Products="Ebook A|Ebook B"))

    items = store.payments.get(result.row.id).line_items
    assert [item.product_title for item in items] == ["Ebook A", "Ebook B"]
    assert [item.tax_amount for item in items] == [Decimal("0.00"), Decimal("0.00")]
    assert items[0].unit_price == Decimal("50.00")


def test_single_product_carries_full_tax(tmp_path):
    store = _store(tmp_path)
    result = _builder(store).build(_record(Total="110.00", Tax="10.00", Products="Ebook A"))

    items = store.payments.get(result.row.id).line_items
    assert len(items) == 1
    assert items[0].tax_amount == Decimal("10.00")


def test_unknown_product_is_created_once(tmp_path):
    store = _store(tmp_path)
    builder = _builder(store)

    builder.build(_record(Total="1", Products="New Title"))
    builder.build(_record(Total="1", Products="New Title"))

    entry = store.catalog.find_by_title("New Title")
    assert entry is not None
    assert entry.author_id == 1
    assert store.catalog.count() == 1
    assert builder.resolver.created_count == 1


def test_missing_customer_is_left_unset(tmp_path):
    store = _store(tmp_path)
    known = store.customers.add_customer("known@example.com", "Known")
    builder = _builder(store)

    missing = builder.build(_record(Total="1", Customer="999"))
    found = builder.build(_record(Total="1", Customer=str(known.id)))

    assert missing.row.customer_id is None
    assert any(w.code == ErrorCode.REFERENCE_NOT_FOUND.value and w.field == "customer_id" for w in missing.warnings)
    assert found.row.customer_id == known.id


def test_user_resolved_by_email(tmp_path):
    store = _store(tmp_path)
    user = store.users.add_user("jdoe", "john@example.com")
    result = _builder(store).build(_record(Total="1", User="john@example.com"))

    assert result.row.user_id == user.id


def test_unmapped_fields_and_address_defaults(tmp_path):
    store = _store(tmp_path)
    result = _builder(store, mapping={"total": "Total", "email": ""}).build(
        _record(Total="7", Email="ignored@example.com", City="Paris")
    )

    payment = store.payments.get(result.row.id)
    assert payment.email is None
    assert payment.address == {"line1": "", "line2": "", "city": "", "state": "", "zip": "", "country": ""}
    assert payment.mode is None
    assert payment.date is None


def test_scalar_fields_coerced(tmp_path):
    store = _store(tmp_path)
    result = _builder(store).build(
        _record(Total="1", Gateway="PayPal", Currency="eur", Date="2023-01-02", City=" Paris ", Email="<b>a@b.io</b>")
    )

    payment = store.payments.get(result.row.id)
    assert payment.gateway == "paypal"
    assert payment.currency == "EUR"
    assert payment.date == datetime(2023, 1, 2)
    assert payment.address["city"] == "Paris"
    assert payment.email == "a@b.io"


def test_import_meta_written(tmp_path):
    store = _store(tmp_path)
    result = _builder(store, import_id="imp-1").build(_record(Total="1"))

    assert store.meta.get_meta(result.row.id, "_import_id", True) == "imp-1"
    assert store.meta.get_meta(result.row.id, "_import_line_no", True) == 2
    assert result.meta == {"payment_id": result.row.id, "line_items": 0}
