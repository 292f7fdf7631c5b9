"""
Fallback entity store.

An in-process substitute for the real database. Twelve collections of loosely
shaped JSON records are kept in memory; every mutation writes the full
snapshot back to a ``StorageBackend`` under a single key.

Semantics:
- ``update`` / ``delete`` of an unknown id return ``None`` (not an exception).
- ``list`` returns the live collection, not a copy.
- No referential checks and no cascades: deleting a team leaves its members
  with a dangling ``teamId``.
- Storage failures never propagate; they are logged and recorded in
  ``last_storage_result``.
"""
from copy import deepcopy
from functools import partialmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
import json
import logging
import random
import string
import time

from pydantic import ValidationError

from backoffice.core.config import settings
from backoffice.core.errors import RecordValidationError, StorageError
from backoffice.core.timestamps import add_timestamps, get_current_timestamp
from backoffice.db.backends import StorageBackend, ProcessGlobalBackend, backend_from_settings
from backoffice.db.memory import PROCESS_STATE
from backoffice.schemas.entities import ENTITY_SCHEMAS, EntityKind, camel_keys
from backoffice.schemas.storage import StorageResult

logger = logging.getLogger(__name__)

SAMPLE_DATA_PATH = Path(__file__).parent / "fixtures" / "sample_data.json"

# Fields owned by the store; callers cannot set them.
SERVER_FIELDS = ("id", "createdAt", "updatedAt", "lastModified")

# Reference field -> collection it points into.
REFERENCE_FIELDS = {
    "teamId": EntityKind.TEAMS,
    "memberId": EntityKind.MEMBERS,
    "categoryId": EntityKind.CATEGORIES,
    "customerId": EntityKind.CUSTOMERS,
}

_ID_ALPHABET = string.digits + string.ascii_lowercase
_INSTANCE_KEY = "store_instance"


def generate_id(prefix: str) -> str:
    """``{prefix}_{epoch millis}_{9 base36 chars}``; unique per process in practice."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def _empty_collections() -> Dict[EntityKind, List[Dict[str, Any]]]:
    return {kind: [] for kind in EntityKind}


class EntityStore:
    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        *,
        data_key: Optional[str] = None,
        initialized_key: Optional[str] = None,
        sync_keys: Optional[Iterable[str]] = None,
    ):
        self.backend = backend if backend is not None else ProcessGlobalBackend()
        self.data_key = data_key or settings.DATA_KEY
        self.initialized_key = initialized_key or settings.INITIALIZED_KEY
        self.sync_keys = list(sync_keys if sync_keys is not None else settings.SYNC_TIMESTAMP_KEYS)
        self._collections = _empty_collections()
        self.last_storage_result = self.load()
        self._apply_first_run_policy()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> StorageResult:
        """Replace in-memory collections with the persisted snapshot.

        Missing data leaves the store empty. Unreadable or corrupt data also
        leaves it empty; the failure is logged and returned, never raised.
        """
        self._collections = _empty_collections()
        try:
            raw = self.backend.get_item(self.data_key)
        except StorageError as e:
            logger.error(f"Error loading store snapshot: {e}")
            return StorageResult.failure("load", str(e))

        if raw is None:
            logger.debug("No stored snapshot found, starting empty")
            return StorageResult.success("load")

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            collections = _empty_collections()
            for kind in EntityKind:
                records = data.get(kind.value) or []
                errors = _collection_errors(kind, records)
                if errors:
                    raise ValueError(f"'{kind.value}': {errors[0]['msg']}")
                collections[kind] = records
        except ValueError as e:
            logger.error(f"Error parsing store snapshot: {e}")
            return StorageResult.failure("load", f"Corrupt snapshot: {e}")

        self._collections = collections
        logger.info(f"Store snapshot loaded: {self.counts()}")
        return StorageResult.success("load")

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """The live collections keyed by snapshot name."""
        return {kind.value: self._collections[kind] for kind in EntityKind}

    def save(self) -> StorageResult:
        try:
            payload = json.dumps(self.snapshot(), ensure_ascii=False)
            self.backend.set_item(self.data_key, payload)
        except (StorageError, TypeError, ValueError) as e:
            logger.error(f"Error saving store snapshot: {e}")
            result = StorageResult.failure("save", str(e))
        else:
            result = StorageResult.success("save")
        self.last_storage_result = result
        return result

    def _set_flag(self, key: str, value: str) -> None:
        try:
            self.backend.set_item(key, value)
        except StorageError as e:
            logger.error(f"Error writing '{key}': {e}")
            self.last_storage_result = StorageResult.failure("save", str(e))

    def _remove_key(self, key: str) -> bool:
        try:
            self.backend.remove_item(key)
        except StorageError as e:
            logger.error(f"Error removing '{key}': {e}")
            self.last_storage_result = StorageResult.failure("remove", str(e))
            return False
        return True

    @property
    def is_initialized(self) -> bool:
        try:
            return self.backend.get_item(self.initialized_key) == "true"
        except StorageError as e:
            logger.error(f"Error reading initialization flag: {e}")
            return False

    def _apply_first_run_policy(self) -> None:
        # An empty, never-initialized store stays empty (no auto-seeding) but
        # is flagged so an explicit reset can be told apart from a first run.
        if self.has_data() or self.is_initialized:
            logger.info(f"Using existing store data: {self.counts()}")
            return
        logger.info("Store is empty and not initialized; keeping it empty")
        self._set_flag(self.initialized_key, "true")

    # ------------------------------------------------------------------
    # Per-entity operations
    # ------------------------------------------------------------------

    def _validate(self, kind: EntityKind, data: Dict[str, Any]) -> Dict[str, Any]:
        schema = ENTITY_SCHEMAS[kind]
        payload = {k: v for k, v in camel_keys(kind, data).items() if k not in SERVER_FIELDS}
        try:
            model = schema.model_validate(payload)
        except ValidationError as e:
            errors = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
            raise RecordValidationError(kind.value, errors) from e
        return model.model_dump(by_alias=True, mode="json")

    def _index_of(self, kind: EntityKind, record_id: str) -> int:
        for index, record in enumerate(self._collections[kind]):
            if record.get("id") == record_id:
                return index
        return -1

    def list(self, kind: Any) -> List[Dict[str, Any]]:
        return self._collections[EntityKind.resolve(kind)]

    def get(self, kind: Any, record_id: str) -> Optional[Dict[str, Any]]:
        kind = EntityKind.resolve(kind)
        index = self._index_of(kind, record_id)
        return self._collections[kind][index] if index != -1 else None

    def create(self, kind: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        kind = EntityKind.resolve(kind)
        fields = self._validate(kind, data)
        record = add_timestamps({"id": generate_id(kind.id_prefix), **fields})
        self._collections[kind].append(record)
        self.save()
        logger.info(f"{kind.value}: created {record['id']}")
        return record

    def update(self, kind: Any, record_id: str, partial: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        kind = EntityKind.resolve(kind)
        index = self._index_of(kind, record_id)
        if index == -1:
            logger.debug(f"{kind.value}: update of unknown id {record_id}")
            return None

        existing = self._collections[kind][index]
        merged = {**existing, **camel_keys(kind, partial)}
        fields = self._validate(kind, merged)
        record = {"id": existing["id"], **fields}
        if "createdAt" in existing:
            record["createdAt"] = existing["createdAt"]
        record = add_timestamps(record, is_update=True)

        self._collections[kind][index] = record
        self.save()
        logger.info(f"{kind.value}: updated {record_id}")
        return record

    def delete(self, kind: Any, record_id: str) -> Optional[Dict[str, Any]]:
        kind = EntityKind.resolve(kind)
        index = self._index_of(kind, record_id)
        if index == -1:
            logger.debug(f"{kind.value}: delete of unknown id {record_id}")
            return None

        removed = self._collections[kind].pop(index)
        self.save()
        logger.info(f"{kind.value}: deleted {record_id}")

        dependents = self._dependents_of(kind, record_id)
        if dependents:
            logger.warning(
                f"{kind.value}: {record_id} deleted with {len(dependents)} dangling reference(s): "
                + ", ".join(f"{d['collection']}/{d['id']}.{d['field']}" for d in dependents)
            )
        return removed

    def replace(self, kind: Any, records: List[Dict[str, Any]]) -> None:
        """Swap a whole collection for ``records`` and persist."""
        kind = EntityKind.resolve(kind)
        self._collections[kind] = list(records)
        self.save()

    # Named wrappers, e.g. create_team / update_salary / list_customer_counts
    create_team = partialmethod(create, EntityKind.TEAMS)
    update_team = partialmethod(update, EntityKind.TEAMS)
    delete_team = partialmethod(delete, EntityKind.TEAMS)
    list_teams = partialmethod(list, EntityKind.TEAMS)

    create_member = partialmethod(create, EntityKind.MEMBERS)
    update_member = partialmethod(update, EntityKind.MEMBERS)
    delete_member = partialmethod(delete, EntityKind.MEMBERS)
    list_members = partialmethod(list, EntityKind.MEMBERS)

    create_customer = partialmethod(create, EntityKind.CUSTOMERS)
    update_customer = partialmethod(update, EntityKind.CUSTOMERS)
    delete_customer = partialmethod(delete, EntityKind.CUSTOMERS)
    list_customers = partialmethod(list, EntityKind.CUSTOMERS)

    create_category = partialmethod(create, EntityKind.CATEGORIES)
    update_category = partialmethod(update, EntityKind.CATEGORIES)
    delete_category = partialmethod(delete, EntityKind.CATEGORIES)
    list_categories = partialmethod(list, EntityKind.CATEGORIES)

    create_transaction = partialmethod(create, EntityKind.TRANSACTIONS)
    update_transaction = partialmethod(update, EntityKind.TRANSACTIONS)
    delete_transaction = partialmethod(delete, EntityKind.TRANSACTIONS)
    list_transactions = partialmethod(list, EntityKind.TRANSACTIONS)

    create_salary = partialmethod(create, EntityKind.SALARIES)
    update_salary = partialmethod(update, EntityKind.SALARIES)
    delete_salary = partialmethod(delete, EntityKind.SALARIES)
    list_salaries = partialmethod(list, EntityKind.SALARIES)

    create_bonus = partialmethod(create, EntityKind.BONUSES)
    update_bonus = partialmethod(update, EntityKind.BONUSES)
    delete_bonus = partialmethod(delete, EntityKind.BONUSES)
    list_bonuses = partialmethod(list, EntityKind.BONUSES)

    create_commission = partialmethod(create, EntityKind.COMMISSIONS)
    update_commission = partialmethod(update, EntityKind.COMMISSIONS)
    delete_commission = partialmethod(delete, EntityKind.COMMISSIONS)
    list_commissions = partialmethod(list, EntityKind.COMMISSIONS)

    create_customer_count = partialmethod(create, EntityKind.CUSTOMER_COUNTS)
    update_customer_count = partialmethod(update, EntityKind.CUSTOMER_COUNTS)
    delete_customer_count = partialmethod(delete, EntityKind.CUSTOMER_COUNTS)
    list_customer_counts = partialmethod(list, EntityKind.CUSTOMER_COUNTS)

    create_customer_transaction = partialmethod(create, EntityKind.CUSTOMER_TRANSACTIONS)
    list_customer_transactions = partialmethod(list, EntityKind.CUSTOMER_TRANSACTIONS)

    list_users = partialmethod(list, EntityKind.USERS)
    list_audit_logs = partialmethod(list, EntityKind.AUDIT_LOGS)

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def reset_all_data(self) -> None:
        """Empty every collection and clear all persisted keys."""
        self._collections = _empty_collections()
        removed = [self._remove_key(key) for key in [self.data_key, self.initialized_key, *self.sync_keys]]
        if all(removed):
            self.last_storage_result = StorageResult.success("reset")
        logger.info("All data reset and initialization flag cleared")

    def initialize_sample_data(self) -> None:
        """Populate every collection from the fixture set, with fresh ids."""
        with SAMPLE_DATA_PATH.open("r", encoding="utf-8") as f:
            fixtures = json.load(f)

        id_map: Dict[str, str] = {}
        for kind in EntityKind:
            for record in fixtures.get(kind.value, []):
                id_map[record["id"]] = generate_id(kind.id_prefix)

        collections = _empty_collections()
        for kind in EntityKind:
            collections[kind] = [_remap_ids(record, id_map) for record in fixtures.get(kind.value, [])]
        self._collections = collections
        self.save()

    def load_sample_data(self) -> Dict[str, int]:
        logger.info("Loading sample data on request")
        self.initialize_sample_data()
        self._set_flag(self.initialized_key, "true")
        counts = self.counts()
        logger.info(f"Sample data loaded: {counts}")
        return counts

    load_sample_data_manually = load_sample_data

    # ------------------------------------------------------------------
    # Snapshot sync
    # ------------------------------------------------------------------

    def export_snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        return deepcopy(self.snapshot())

    def import_snapshot(self, data: Dict[str, Any]) -> List[str]:
        """Replace every collection present in ``data``; returns the keys applied.

        Every collection is checked before any is applied, so a rejected
        import leaves the store untouched.
        """
        incoming = {kind: data[kind.value] for kind in EntityKind if data.get(kind.value) is not None}
        for kind, records in incoming.items():
            errors = _collection_errors(kind, records)
            if errors:
                raise RecordValidationError(kind.value, errors)

        for kind, records in incoming.items():
            self._collections[kind] = deepcopy(records)
        applied = [kind.value for kind in incoming]
        self.save()
        if self.sync_keys:
            self._set_flag(self.sync_keys[0], get_current_timestamp())
        logger.info(f"Snapshot imported for: {', '.join(applied) or 'nothing'}")
        return applied

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def counts(self) -> Dict[str, int]:
        return {kind.value: len(records) for kind, records in self._collections.items()}

    def has_data(self) -> bool:
        return any(self._collections[kind] for kind in EntityKind)

    def _dependents_of(self, kind: EntityKind, record_id: str) -> List[Dict[str, str]]:
        fields = [field for field, target in REFERENCE_FIELDS.items() if target == kind]
        found = []
        for other, records in self._collections.items():
            for record in records:
                for field in fields:
                    if record.get(field) == record_id:
                        found.append({"collection": other.value, "id": record.get("id"), "field": field})
        return found

    def dangling_references(self) -> List[Dict[str, str]]:
        """Every reference field whose target id no longer exists."""
        known = {
            target: {r.get("id") for r in self._collections[target]}
            for target in set(REFERENCE_FIELDS.values())
        }
        dangling = []
        for kind, records in self._collections.items():
            for record in records:
                for field, target in REFERENCE_FIELDS.items():
                    value = record.get(field)
                    if value and value not in known[target]:
                        dangling.append({
                            "collection": kind.value,
                            "id": record.get("id"),
                            "field": field,
                            "missing": value,
                        })
        return dangling


def _collection_errors(kind: EntityKind, records: Any) -> List[Dict[str, Any]]:
    """Shape problems of one snapshot collection: it must be a list of objects."""
    if not isinstance(records, list):
        return [{"loc": [kind.value], "msg": "Input should be a valid list"}]
    return [
        {"loc": [kind.value, index], "msg": "Input should be a valid object"}
        for index, record in enumerate(records)
        if not isinstance(record, dict)
    ]

def _remap_ids(value: Any, id_map: Dict[str, str], key: Optional[str] = None) -> Any:
    if isinstance(value, dict):
        return {k: _remap_ids(v, id_map, k) for k, v in value.items()}
    if isinstance(value, list):
        return [_remap_ids(v, id_map) for v in value]
    if isinstance(value, str) and key is not None and (key == "id" or key.endswith("Id")):
        return id_map.get(value, value)
    return value


def get_default_store() -> EntityStore:
    """Process-wide store. Cached on the process-global state so every caller
    gets the identical instance."""
    store = PROCESS_STATE.get(_INSTANCE_KEY)
    if store is None:
        logger.info("Creating process-wide entity store")
        store = EntityStore(backend_from_settings())
        PROCESS_STATE[_INSTANCE_KEY] = store
    return store


def reset_default_store() -> None:
    """Drop the cached process-wide store; the next lookup builds a fresh one."""
    PROCESS_STATE.pop(_INSTANCE_KEY, None)
