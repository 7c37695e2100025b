from __future__ import annotations

from dataclasses import dataclass

from batchimport.domain.error_codes import ErrorCode
from batchimport.domain.models import DiagnosticItem, DiagnosticStage, RowRef
from batchimport.domain.payments.models import ADDRESS_FIELDS, STATUS_PENDING, ZERO, LineItem, Payment
from batchimport.domain.ports.lookups import CustomerLookupProtocol
from batchimport.domain.ports.payments import PaymentMetaProtocol, PaymentStoreProtocol
from batchimport.domain.transform.coercion import ValueCoercer, absInt, splitList
from batchimport.domain.transform.entity_resolver import CatalogEntityResolver
from batchimport.domain.transform.field_mapping import FieldMapping
from batchimport.domain.transform.result import TransformResult
from batchimport.domain.transform.source_record import SourceRecord

# Текстовые поля, которые переносятся в платёж после sanitizeText без доп. логики.
TEXT_FIELDS = ("number", "email", "first_name", "last_name", "discounts", "transaction_id", "ip")


@dataclass(frozen=True)
class BuilderConfig:
    """
    Назначение:
        Настройки сборки платежа.

    Поля:
        suppress_side_effects: не создавать уведомления (чеки/письма) при сохранении.
        import_id: идентификатор импорта для служебной меты платежа.
    """
    suppress_side_effects: bool = True
    import_id: str | None = None


class PaymentRecordBuilder:
    """
    Назначение/ответственность:
        Собирает и сохраняет один платёж из строки источника.

    Алгоритм:
        1) Payment в статусе pending.
        2) total, tax; subtotal из колонки либо total - tax.
        3) Скалярные поля через маппинг и коэрсер.
        4) customer_id принимается только для существующего покупателя.
        5) user_id по id / e-mail / логину.
        6) Список товаров: resolve-or-create, позиции с ценой из каталога;
           налог целиком на единственную позицию, при нескольких позициях 0.
        7) Поля адреса, по умолчанию пустые строки.
        8) Первое сохранение.
        9) Статус из колонки (lower) и повторное сохранение: побочные эффекты
           смены статуса выполняются только на этом шаге.
    """

    def __init__(
        self,
        mapping: FieldMapping,
        coercer: ValueCoercer,
        resolver: CatalogEntityResolver,
        customers: CustomerLookupProtocol,
        store: PaymentStoreProtocol,
        meta: PaymentMetaProtocol | None = None,
        config: BuilderConfig | None = None,
    ) -> None:
        self.mapping = mapping
        self.coercer = coercer
        self.resolver = resolver
        self.customers = customers
        self.store = store
        self.meta = meta
        self.config = config or BuilderConfig()

    def build(self, record: SourceRecord) -> TransformResult[Payment]:
        warnings: list[DiagnosticItem] = []
        payment = self.assemble(record, warnings)

        self.store.save(payment, suppress_side_effects=self.config.suppress_side_effects)
        if self.meta is not None and payment.id is not None:
            if self.config.import_id:
                self.meta.update_meta(payment.id, "_import_id", self.config.import_id)
            self.meta.update_meta(payment.id, "_import_line_no", record.line_no)

        status = self._value(record, "status")
        if status is not None:
            payment.status = (self.coercer.text(status) or STATUS_PENDING).lower()
        self.store.save(payment, suppress_side_effects=self.config.suppress_side_effects)

        return TransformResult(
            record=record,
            row=payment,
            row_ref=RowRef(line_no=record.line_no, row_id=record.record_id),
            meta={"payment_id": payment.id, "line_items": len(payment.line_items)},
            warnings=warnings,
        )

    def assemble(self, record: SourceRecord, warnings: list[DiagnosticItem]) -> Payment:
        """
        Назначение:
            Шаги 1-7: сборка платежа без сохранения.
        """
        payment = Payment(status=STATUS_PENDING)

        total = self.coercer.amount(self._value(record, "total"), "total", warnings)
        if total is not None:
            payment.total = total
        tax = self.coercer.amount(self._value(record, "tax"), "tax", warnings)
        if tax is not None:
            payment.tax = tax
        subtotal = self.coercer.amount(self._value(record, "subtotal"), "subtotal", warnings)
        payment.subtotal = subtotal if subtotal is not None else payment.total - payment.tax

        for field_name in TEXT_FIELDS:
            value = self.coercer.text(self._value(record, field_name))
            if value is not None:
                setattr(payment, field_name, value)

        if self._value(record, "mode") is not None:
            payment.mode = self.coercer.mode(self._value(record, "mode"))
        if self._value(record, "date") is not None:
            payment.date = self.coercer.date(self._value(record, "date"), "date", warnings)
        payment.gateway = self.coercer.gateway(self._value(record, "gateway"))
        payment.currency = self.coercer.currency(self._value(record, "currency"))
        payment.parent_payment_id = absInt(self._value(record, "parent_payment_id"))

        self._apply_customer(record, payment, warnings)
        payment.user_id = self.coercer.user_id(self._value(record, "user_id"), "user_id", warnings)
        self._apply_line_items(record, payment, warnings)

        for key in ADDRESS_FIELDS:
            payment.address[key] = self.coercer.text(self._value(record, key)) or ""
        return payment

    def _apply_customer(self, record: SourceRecord, payment: Payment, warnings: list[DiagnosticItem]) -> None:
        raw = self._value(record, "customer_id")
        if raw is None:
            return
        customer_id = absInt(raw)
        customer = self.customers.get_customer_by_id(customer_id) if customer_id else None
        if customer is None or customer.id <= 0:
            warnings.append(
                DiagnosticItem(
                    stage=DiagnosticStage.RESOLVE,
                    code=ErrorCode.REFERENCE_NOT_FOUND.value,
                    field="customer_id",
                    message=f"Customer not found: {raw}",
                )
            )
            return
        payment.customer_id = customer.id

    def _apply_line_items(self, record: SourceRecord, payment: Payment, warnings: list[DiagnosticItem]) -> None:
        titles = splitList(self._value(record, "downloads"))
        count = len(titles)
        for title in titles:
            entry = self.resolver.resolve(title, warnings)
            if entry is None:
                continue
            item_tax = payment.tax if count == 1 else ZERO
            payment.add_line_item(
                LineItem(
                    product_id=entry.id,
                    product_title=entry.title,
                    unit_price=entry.price,
                    tax_amount=item_tax,
                )
            )

    def _value(self, record: SourceRecord, field_name: str) -> str | None:
        return self.mapping.value_for(record.values, field_name)
