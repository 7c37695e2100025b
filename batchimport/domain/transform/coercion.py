from __future__ import annotations

import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from batchimport.common.sanitize import sanitizeText
from batchimport.domain.error_codes import ErrorCode
from batchimport.domain.models import DiagnosticItem, DiagnosticStage
from batchimport.domain.ports.lookups import UserLookupProtocol
from batchimport.domain.ports.runtime import ClockProtocol, GatewayRegistryProtocol

CENT = Decimal("0.01")
PAYMENT_MODES = ("test", "live")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_LEADING_INT_RE = re.compile(r"^\s*[-+]?\d+")
_NUMBER_RE = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)$")

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y %H:%M",
)


def _invalid(warnings: list[DiagnosticItem] | None, field: str, message: str) -> None:
    if warnings is None:
        return
    warnings.append(
        DiagnosticItem(
            stage=DiagnosticStage.COERCE,
            code=ErrorCode.ROW_FIELD_INVALID.value,
            field=field,
            message=message,
        )
    )


def _not_found(warnings: list[DiagnosticItem] | None, field: str, message: str) -> None:
    if warnings is None:
        return
    warnings.append(
        DiagnosticItem(
            stage=DiagnosticStage.RESOLVE,
            code=ErrorCode.REFERENCE_NOT_FOUND.value,
            field=field,
            message=message,
        )
    )


def splitList(value: str | None) -> list[str]:
    """
    Назначение:
        Превращает текст ячейки со списком в список строк.

    Алгоритм:
        - Разделитель выбирается по приоритету: '|', ',', ';', затем '/'
          (кроме URL и строк, начинающихся с '/').
        - Элементы тримятся, пустые отбрасываются.
    """
    if value is None:
        return []
    delimiter: str | None = None
    for candidate in ("|", ",", ";"):
        if candidate in value:
            delimiter = candidate
            break
    if delimiter is None and "/" in value and "://" not in value and not value.startswith("/"):
        delimiter = "/"
    parts = value.split(delimiter) if delimiter else [value]
    return [part.strip() for part in parts if part.strip()]


def absInt(value: str | None) -> int | None:
    """
    Назначение:
        Абсолютное целое из ведущей числовой части строки ("12abc" -> 12, "-5" -> 5).
        Ноль и нечисловой текст -> None.
    """
    if value is None:
        return None
    match = _LEADING_INT_RE.match(value)
    if not match:
        return None
    number = abs(int(match.group(0)))
    return number or None


class ValueCoercer:
    """
    Назначение/ответственность:
        Приведение сырых значений ячеек к типам платежа.

    Инварианты:
        - Ни один метод не возбуждает исключений: невалидный ввод превращается
          в None либо в документированный fallback, с предупреждением в warnings.
    """

    def __init__(
        self,
        *,
        clock: ClockProtocol,
        gateways: GatewayRegistryProtocol,
        users: UserLookupProtocol,
        test_mode: bool = False,
        thousands_sep: str = ",",
        decimal_sep: str = ".",
    ) -> None:
        if thousands_sep == decimal_sep:
            raise ValueError("thousands_sep and decimal_sep must differ")
        self.clock = clock
        self.gateways = gateways
        self.users = users
        self.test_mode = test_mode
        self.thousands_sep = thousands_sep
        self.decimal_sep = decimal_sep
        allowed = re.escape(thousands_sep) + re.escape(decimal_sep)
        self._amount_junk_re = re.compile(rf"[^0-9\-+{allowed}]")

    def text(self, raw: str | None) -> str | None:
        return sanitizeText(raw)

    def amount(self, raw: str | None, field: str = "amount", warnings: list[DiagnosticItem] | None = None) -> Decimal | None:
        if raw is None:
            return None
        cleaned = self._amount_junk_re.sub("", raw)
        if self.thousands_sep:
            cleaned = cleaned.replace(self.thousands_sep, "")
        if self.decimal_sep != ".":
            cleaned = cleaned.replace(self.decimal_sep, ".")
        if not _NUMBER_RE.match(cleaned):
            _invalid(warnings, field, f"Invalid amount: {raw!r}")
            return None
        try:
            return Decimal(cleaned).quantize(CENT, rounding=ROUND_HALF_UP)
        except InvalidOperation:
            _invalid(warnings, field, f"Invalid amount: {raw!r}")
            return None

    def date(self, raw: str | None, field: str = "date", warnings: list[DiagnosticItem] | None = None) -> datetime:
        text = sanitizeText(raw)
        if text is not None:
            parsed = _parse_date(text)
            if parsed is not None:
                return parsed
            _invalid(warnings, field, f"Unparseable date {raw!r}, using current time")
        return self.clock.now()

    def mode(self, raw: str | None) -> str:
        value = (sanitizeText(raw) or "").lower()
        if value in PAYMENT_MODES:
            return value
        return "test" if self.test_mode else "live"

    def currency(self, raw: str | None) -> str | None:
        value = sanitizeText(raw)
        return value.upper() if value else None

    def user_id(self, raw: str | None, field: str = "user_id", warnings: list[DiagnosticItem] | None = None) -> int | None:
        value = sanitizeText(raw)
        if value is None:
            return None
        user = None
        if _NUMBER_RE.match(value):
            # "+12", "12.0", "-12" -> id 12
            number = absInt(value)
            if number is not None:
                user = self.users.get_user_by_id(number)
        else:
            if _EMAIL_RE.match(value):
                user = self.users.get_user_by_email(value)
            if user is None:
                user = self.users.get_user_by_login(value)
        if user is None:
            _not_found(warnings, field, f"User not found: {value}")
            return None
        return user.id

    def gateway(self, raw: str | None) -> str | None:
        value = sanitizeText(raw)
        if value is None:
            return None
        value = value.lower()
        gateways = self.gateways.get_gateways()
        if value in gateways:
            return value
        for key, info in gateways.items():
            if info.checkout_label.lower() == value:
                return key
        return value


def _parse_date(text: str) -> datetime | None:
    if text.isdigit() and len(text) >= 9:
        try:
            return datetime.fromtimestamp(int(text))
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None
