from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping

from batchimport.domain.payments.models import GatewayInfo

DEFAULT_GATEWAYS: Mapping[str, GatewayInfo] = MappingProxyType(
    {
        "paypal": GatewayInfo(key="paypal", admin_label="PayPal Standard", checkout_label="PayPal"),
        "manual": GatewayInfo(key="manual", admin_label="Test Payment", checkout_label="Test Payment"),
    }
)


class GatewayRegistry:
    """
    Назначение/ответственность:
        Реестр платёжных шлюзов: встроенные шлюзы + шлюзы из конфигурации.

    Поведение:
        - Ключи приводятся к нижнему регистру.
        - Конфигурация перекрывает подписи встроенных шлюзов.
        - Порядок: встроенные, затем добавленные (важен для поиска по подписи).
    """

    def __init__(self, extra: Mapping[str, Any] | None = None, include_defaults: bool = True) -> None:
        gateways: dict[str, GatewayInfo] = dict(DEFAULT_GATEWAYS) if include_defaults else {}
        for key, value in (extra or {}).items():
            gateways[str(key).lower()] = _to_gateway_info(str(key).lower(), value, gateways.get(str(key).lower()))
        self._gateways = MappingProxyType(gateways)

    def get_gateways(self) -> Mapping[str, GatewayInfo]:
        return self._gateways


def _to_gateway_info(key: str, value: Any, current: GatewayInfo | None) -> GatewayInfo:
    if isinstance(value, str):
        return GatewayInfo(key=key, admin_label=value, checkout_label=value)
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid gateway config for '{key}': expected mapping or label")
    admin_label = value.get("admin_label") or (current.admin_label if current else key)
    checkout_label = value.get("checkout_label") or (current.checkout_label if current else admin_label)
    return GatewayInfo(key=key, admin_label=str(admin_label), checkout_label=str(checkout_label))
