from __future__ import annotations

import sqlite3

from batchimport.domain.payments.models import Customer, User
from batchimport.domain.ports.lookups import CustomerLookupProtocol, UserLookupProtocol
from batchimport.infra.store.sqlite_engine import SqliteEngine


class SqliteCustomerRepository(CustomerLookupProtocol):
    """
    Назначение/ответственность:
        Покупатели: поиск по id, добавление (seed).
    """

    def __init__(self, engine: SqliteEngine):
        self.engine = engine

    def get_customer_by_id(self, customer_id: int) -> Customer | None:
        if customer_id <= 0:
            return None
        row = self.engine.fetchone("SELECT id, email, name FROM customers WHERE id = ?", (customer_id,))
        if row is None:
            return None
        return Customer(id=int(row["id"]), email=row["email"], name=row["name"])

    def add_customer(self, email: str | None, name: str | None = None, customer_id: int | None = None) -> Customer:
        new_id = self.engine.insert(
            "INSERT INTO customers(id, email, name) VALUES (?, ?, ?)",
            (customer_id, email, name),
        )
        return Customer(id=new_id, email=email, name=name)


class SqliteUserRepository(UserLookupProtocol):
    """
    Назначение/ответственность:
        Учётные записи пользователей: поиск по id, e-mail (без учёта регистра), логину.
    """

    def __init__(self, engine: SqliteEngine):
        self.engine = engine

    def get_user_by_id(self, user_id: int) -> User | None:
        return self._one("SELECT id, login, email FROM users WHERE id = ?", (user_id,))

    def get_user_by_email(self, email: str) -> User | None:
        return self._one("SELECT id, login, email FROM users WHERE email = ? COLLATE NOCASE", (email,))

    def get_user_by_login(self, login: str) -> User | None:
        return self._one("SELECT id, login, email FROM users WHERE login = ?", (login,))

    def add_user(self, login: str, email: str | None = None, user_id: int | None = None) -> User:
        new_id = self.engine.insert(
            "INSERT INTO users(id, login, email) VALUES (?, ?, ?)",
            (user_id, login, email),
        )
        return User(id=new_id, login=login, email=email)

    def _one(self, sql: str, params: tuple) -> User | None:
        row: sqlite3.Row | None = self.engine.fetchone(sql, params)
        if row is None:
            return None
        return User(id=int(row["id"]), login=row["login"], email=row["email"])
