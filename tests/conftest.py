# tests/conftest.py
"""
Fixtures partagées : client Supabase en mémoire, utilisateurs et
interventions de test.

Le faux client reproduit la partie de l'API supabase-py utilisée par la
couche CRUD : table().select/insert/update/delete/upsert, filtres
eq/neq/in_/is_/lt/lte/gt/gte, order/range/limit, puis execute().
"""
import os

os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_KEY", "test-key")

import copy
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from app.models import InterventionStatus, User, UserRole
from app.services import InterventionService, QuoteService, TimeSlotService


class FakeAPIError(Exception):
    """Équivalent de postgrest.exceptions.APIError (attribut code)"""

    def __init__(self, message: str, code: str = "XX000"):
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass
class FakeResponse:
    data: List[Dict[str, Any]]
    count: Optional[int] = None


def _as_comparable(value):
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


def _compare(left, right, op) -> bool:
    if left is None or right is None:
        return False
    a, b = _as_comparable(left), _as_comparable(right)
    if type(a) is not type(b):
        a, b = str(left), str(right)
    return op(a, b)


class FakeQuery:

    def __init__(self, client: "FakeSupabase", table: str):
        self.client = client
        self.table = table
        self.operation = "select"
        self.payload: Any = None
        self.on_conflict: Optional[str] = None
        self.filters = []
        self.orders = []
        self.offset = 0
        self.max_rows: Optional[int] = None
        self.want_count = False

    # ----- opérations -----

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.operation = "select"
        self.want_count = count is not None
        return self

    def insert(self, data):
        self.operation, self.payload = "insert", data
        return self

    def update(self, data):
        self.operation, self.payload = "update", data
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def upsert(self, data, on_conflict: str = "id"):
        self.operation, self.payload, self.on_conflict = "upsert", data, on_conflict
        return self

    # ----- filtres -----

    def _filter(self, predicate):
        self.filters.append(predicate)
        return self

    def eq(self, column, value):
        return self._filter(lambda row: row.get(column) == value)

    def neq(self, column, value):
        return self._filter(lambda row: row.get(column) != value)

    def in_(self, column, values):
        values = list(values)
        return self._filter(lambda row: row.get(column) in values)

    def is_(self, column, value):
        if value in ("null", None):
            return self._filter(lambda row: row.get(column) is None)
        return self._filter(lambda row: row.get(column) == value)

    def lt(self, column, value):
        return self._filter(lambda row: _compare(row.get(column), value, lambda a, b: a < b))

    def lte(self, column, value):
        return self._filter(lambda row: _compare(row.get(column), value, lambda a, b: a <= b))

    def gt(self, column, value):
        return self._filter(lambda row: _compare(row.get(column), value, lambda a, b: a > b))

    def gte(self, column, value):
        return self._filter(lambda row: _compare(row.get(column), value, lambda a, b: a >= b))

    def order(self, column, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def range(self, start: int, end: int):
        self.offset = start
        self.max_rows = end - start + 1
        return self

    def limit(self, n: int):
        self.max_rows = n
        return self

    # ----- exécution -----

    def _matches(self, row) -> bool:
        return all(predicate(row) for predicate in self.filters)

    def execute(self) -> FakeResponse:
        self.client._maybe_fail(self.table, self.operation)
        rows = self.client.tables.setdefault(self.table, [])

        if self.operation == "select":
            result = [row for row in rows if self._matches(row)]
            for column, desc in reversed(self.orders):
                present = [r for r in result if r.get(column) is not None]
                missing = [r for r in result if r.get(column) is None]
                present.sort(key=lambda r: _as_comparable(r[column]), reverse=desc)
                result = present + missing
            total = len(result)
            result = result[self.offset:]
            if self.max_rows is not None:
                result = result[:self.max_rows]
            return FakeResponse(copy.deepcopy(result), total if self.want_count else None)

        if self.operation == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            created = [self.client._new_row(self.table, item) for item in items]
            for row in created:
                self.client._check_unique(self.table, row, rows + [r for r in created if r is not row])
            rows.extend(created)
            return FakeResponse(copy.deepcopy(created))

        if self.operation == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(copy.deepcopy(self.payload))
                    updated.append(row)
            return FakeResponse(copy.deepcopy(updated))

        if self.operation == "delete":
            removed = [row for row in rows if self._matches(row)]
            self.client.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(copy.deepcopy(removed))

        if self.operation == "upsert":
            keys = [k.strip() for k in self.on_conflict.split(",")]
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            result = []
            for item in items:
                existing = next((r for r in rows if all(r.get(k) == item.get(k) for k in keys)), None)
                if existing:
                    existing.update(copy.deepcopy(item))
                    result.append(existing)
                else:
                    row = self.client._new_row(self.table, item)
                    rows.append(row)
                    result.append(row)
            return FakeResponse(copy.deepcopy(result))

        raise AssertionError(f"Opération inconnue: {self.operation}")


class FakeSupabase:
    """Client Supabase en mémoire"""

    UNIQUE = {
        "intervention_assignments": [("intervention_id", "user_id", "role")],
        "time_slot_responses": [("time_slot_id", "user_id")],
    }

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Dict[tuple, Optional[int]] = {}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    # ----- injection de pannes -----

    def fail_on(self, table: str, operation: str, times: Optional[int] = None):
        """Fait échouer les prochaines opérations (toutes si times est None)"""
        self.failures[(table, operation)] = times

    def _maybe_fail(self, table: str, operation: str):
        key = (table, operation)
        if key not in self.failures:
            return
        remaining = self.failures[key]
        if remaining is not None:
            if remaining <= 1:
                del self.failures[key]
            else:
                self.failures[key] = remaining - 1
        raise FakeAPIError(f"connection refused ({table}.{operation})", code="08006")

    # ----- lignes -----

    def _new_row(self, table: str, item: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).isoformat()
        row = copy.deepcopy(item)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        return row

    def _check_unique(self, table: str, row: Dict[str, Any], others: List[Dict[str, Any]]):
        for columns in self.UNIQUE.get(table, []):
            if any(all(o.get(c) == row.get(c) for c in columns) for o in others):
                raise FakeAPIError(
                    f'duplicate key value violates unique constraint "{table}_{"_".join(columns)}_key"',
                    code="23505"
                )

    def rows(self, table: str, **filters) -> List[Dict[str, Any]]:
        """Lecture directe pour les assertions"""
        return [
            r for r in self.tables.get(table, [])
            if all(r.get(k) == v for k, v in filters.items())
        ]

    def insert_row(self, table: str, **values) -> Dict[str, Any]:
        row = self._new_row(table, values)
        self.tables.setdefault(table, []).append(row)
        return row


# ========================================
# Fixtures
# ========================================

TEAM_ID = "team-1"
OTHER_TEAM_ID = "team-2"


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def users(db):
    """Un utilisateur par rôle dans l'équipe, plus des utilisateurs non affectés"""
    def add(key, role, name, team_id=TEAM_ID):
        row = db.insert_row(
            "users",
            id=key,
            email=f"{key}@example.com",
            name=name,
            role=role.value,
            team_id=team_id,
        )
        return User(**row)

    return SimpleNamespace(
        manager=add("manager-1", UserRole.GESTIONNAIRE, "Claire Martin"),
        admin=add("admin-1", UserRole.ADMIN, "Admin SEIDO"),
        tenant=add("tenant-1", UserRole.LOCATAIRE, "Lucas Bernard"),
        other_tenant=add("tenant-2", UserRole.LOCATAIRE, "Emma Petit"),
        provider=add("provider-1", UserRole.PRESTATAIRE, "Plomberie Dupuis"),
        other_provider=add("provider-2", UserRole.PRESTATAIRE, "Élec Services"),
        foreign_manager=add("manager-2", UserRole.GESTIONNAIRE, "Paul Durand", OTHER_TEAM_ID),
    )


@pytest.fixture
def make_intervention(db, users):
    """
    Insère une intervention au statut demandé, avec le locataire
    (et optionnellement le prestataire) affectés
    """
    def factory(
        status: InterventionStatus = InterventionStatus.demande,
        tenant: Optional[User] = None,
        provider: Optional[User] = None,
        **fields
    ) -> Dict[str, Any]:
        row = db.insert_row(
            "interventions",
            reference=f"INT-TEST-{uuid.uuid4().hex[:6].upper()}",
            title=fields.pop("title", "Fuite sous l'évier"),
            description=fields.pop("description", "L'eau coule sous l'évier de la cuisine"),
            urgency=fields.pop("urgency", "normale"),
            type=fields.pop("type", "plomberie"),
            team_id=fields.pop("team_id", TEAM_ID),
            status=InterventionStatus(status).value,
            **fields
        )
        tenant = tenant if tenant is not None else users.tenant
        db.insert_row("intervention_assignments", intervention_id=row["id"], user_id=tenant.id,
                      role="locataire", is_lead=False)
        if provider is not None:
            db.insert_row("intervention_assignments", intervention_id=row["id"], user_id=provider.id,
                          role="prestataire", is_lead=False)
        return row

    return factory


@pytest.fixture
def service(db):
    return InterventionService(db)


@pytest.fixture
def slot_service(db):
    return TimeSlotService(db)


@pytest.fixture
def quote_service(db):
    return QuoteService(db)
