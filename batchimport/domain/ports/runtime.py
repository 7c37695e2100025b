from __future__ import annotations

from datetime import datetime
from typing import Mapping, Protocol

from batchimport.domain.payments.models import GatewayInfo


class ClockProtocol(Protocol):
    def now(self) -> datetime: ...


class GatewayRegistryProtocol(Protocol):
    """
    Назначение:
        Реестр платёжных шлюзов: ключ -> подписи.
    """

    def get_gateways(self) -> Mapping[str, GatewayInfo]: ...
