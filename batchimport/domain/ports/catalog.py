from __future__ import annotations

from typing import Protocol

from batchimport.domain.payments.models import CatalogEntry


class CatalogRepositoryProtocol(Protocol):
    """
    Назначение/ответственность:
        Порт каталога товаров (поиск по названию, создание минимальной позиции).

    Контракт:
        - find_by_title: точное совпадение названия.
        - get_or_create: возвращает (позиция, created); при конфликте уникальности
          created=False и возвращается уже существующая позиция.
          При сбое хранилища возбуждает CatalogCreateError.
    """

    def find_by_title(self, title: str) -> CatalogEntry | None: ...

    def get_or_create(self, title: str, author_id: int | None) -> tuple[CatalogEntry, bool]: ...
