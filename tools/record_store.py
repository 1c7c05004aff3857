"""
Record Store Gateway: CRUD façade over the Accounts table.

`AirtableClient` speaks the Airtable REST API over httpx. The gateway only
needs the four capabilities of `RecordStore`, so tests and local runs can
swap in any object with the same methods.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Protocol

import httpx

from config.settings import (
    ACCOUNTS_TABLE,
    AIRTABLE_API_KEY,
    AIRTABLE_API_URL,
    AIRTABLE_BASE_ID,
    RECORD_STORE_TIMEOUT,
)
from models.schemas import FIELD_NAME, FIELD_STATUS, StoreRecord
from tools.enum_normalizer import unique_options

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


class RecordStoreError(RuntimeError):
    pass


class RecordNotFoundError(RecordStoreError):
    pass


class RecordStore(Protocol):
    def select(
        self, table: str, formula: str | None = None, fields: list[str] | None = None
    ) -> list[StoreRecord]: ...

    def find(self, table: str, record_id: str) -> StoreRecord: ...

    def create(self, table: str, fields: dict[str, Any]) -> StoreRecord: ...

    def update(self, table: str, record_id: str, fields: dict[str, Any]) -> StoreRecord: ...


# =============================================================================
# Filter formulas
# =============================================================================

def quote_literal(value: Any) -> str:
    """Render a literal for an Airtable formula."""
    if isinstance(value, bool):
        return "TRUE()" if value else "FALSE()"
    if isinstance(value, (int, float)):
        return str(value)
    text = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{text}'"


def build_filter_formula(filters: dict[str, Any]) -> str:
    """Equality filters joined with AND, e.g. AND({Name} = 'Acme', {Status} = 'Draft')."""
    clauses = [f"{{{field}}} = {quote_literal(value)}" for field, value in filters.items()]
    if not clauses:
        return ""
    if len(clauses) == 1:
        return clauses[0]
    return f"AND({', '.join(clauses)})"


# =============================================================================
# Airtable REST client
# =============================================================================

class AirtableClient:
    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_id: str | None = None,
        api_url: str | None = None,
        timeout: int = RECORD_STORE_TIMEOUT,
        http_client: httpx.Client | None = None,
    ) -> None:
        key = (api_key if api_key is not None else AIRTABLE_API_KEY).strip()
        base = (base_id if base_id is not None else AIRTABLE_BASE_ID).strip()
        self.base_url = f"{(api_url or AIRTABLE_API_URL).rstrip('/')}/{base}"
        self._configured = bool(key and base)
        self._headers = {
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        self._http = http_client or httpx.Client(timeout=timeout)

    @property
    def configured(self) -> bool:
        return self._configured

    def _ensure_configured(self) -> None:
        if not self.configured:
            raise RecordStoreError(
                "Airtable is not configured. Set AIRTABLE_API_KEY and AIRTABLE_BASE_ID."
            )

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        payload: Any = None,
    ) -> dict[str, Any]:
        self._ensure_configured()
        try:
            response = self._http.request(
                method, f"{self.base_url}{path}", params=params, json=payload, headers=self._headers
            )
        except httpx.HTTPError as e:
            raise RecordStoreError(f"Airtable {method} {path} failed: {e}") from e
        if response.status_code == 404:
            raise RecordNotFoundError(f"Airtable {method} {path}: not found")
        if response.status_code >= 400:
            snippet = response.text[:1200]
            raise RecordStoreError(f"Airtable {method} {path} failed ({response.status_code}): {snippet}")
        return response.json()

    @staticmethod
    def _to_record(raw: dict[str, Any]) -> StoreRecord:
        return StoreRecord(
            id=raw["id"],
            fields=raw.get("fields") or {},
            created_time=raw.get("createdTime"),
        )

    def select(
        self, table: str, formula: str | None = None, fields: list[str] | None = None
    ) -> list[StoreRecord]:
        records: list[StoreRecord] = []
        offset: str | None = None
        while True:
            params: list[tuple[str, Any]] = [("pageSize", PAGE_SIZE)]
            if formula:
                params.append(("filterByFormula", formula))
            for field in fields or []:
                params.append(("fields[]", field))
            if offset:
                params.append(("offset", offset))
            page = self._request("GET", f"/{table}", params=params)
            records.extend(self._to_record(raw) for raw in page.get("records", []))
            offset = page.get("offset")
            if not offset:
                break
        return records

    def find(self, table: str, record_id: str) -> StoreRecord:
        return self._to_record(self._request("GET", f"/{table}/{record_id}"))

    def create(self, table: str, fields: dict[str, Any]) -> StoreRecord:
        raw = self._request("POST", f"/{table}", payload={"fields": fields, "typecast": True})
        return self._to_record(raw)

    def update(self, table: str, record_id: str, fields: dict[str, Any]) -> StoreRecord:
        raw = self._request("PATCH", f"/{table}/{record_id}", payload={"fields": fields, "typecast": True})
        return self._to_record(raw)


# =============================================================================
# Gateway
# =============================================================================

class RecordStoreGateway:
    """Table-scoped account operations used by the orchestration layer."""

    def __init__(self, store: RecordStore, table: str = ACCOUNTS_TABLE):
        self.store = store
        self.table = table

    def find(self, record_id: str) -> StoreRecord:
        if not record_id:
            raise RecordNotFoundError("recordId is required to identify the account.")
        return self.store.find(self.table, record_id)

    def create(self, fields: dict[str, Any]) -> StoreRecord:
        record = self.store.create(self.table, fields)
        if not record or not record.id:
            raise RecordStoreError("Failed to create the account in the record store.")
        logger.info("Created %s record %s", self.table, record.id)
        return record

    def update(self, record_id: str, fields: dict[str, Any]) -> StoreRecord:
        record = self.store.update(self.table, record_id, fields)
        logger.info("Updated %s record %s (%s)", self.table, record_id, ", ".join(fields))
        return record

    def query(self, filters: dict[str, Any], fields: list[str] | None = None) -> list[StoreRecord]:
        return self.store.select(self.table, formula=build_filter_formula(filters), fields=fields)

    def find_by_name_and_status(self, name: str, status: str) -> StoreRecord | None:
        matches = self.query({FIELD_NAME: name, FIELD_STATUS: status})
        return matches[0] if matches else None

    def list_field_values(self, field: str) -> list[str]:
        """Distinct string values of one column across all records (no caching)."""
        records = self.store.select(self.table, fields=[field])
        return unique_options(_iter_values(records, field))


def _iter_values(records: Iterable[StoreRecord], field: str) -> Iterable[Any]:
    for record in records:
        yield record.fields.get(field)


_gateway: RecordStoreGateway | None = None


def get_gateway() -> RecordStoreGateway:
    """Process-wide gateway over the configured Airtable base."""
    global _gateway
    if _gateway is None:
        _gateway = RecordStoreGateway(AirtableClient())
    return _gateway
