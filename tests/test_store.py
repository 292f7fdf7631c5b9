import json
import re

import pytest

from backoffice.core.errors import RecordValidationError, StorageError, UnknownEntityKindError
from backoffice.db.backends import ProcessGlobalBackend
from backoffice.db.store import EntityStore, generate_id, get_default_store, reset_default_store
from backoffice.schemas.entities import EntityKind
from backoffice.schemas.storage import StorageResult

ID_PATTERN = r"^{}_\d{{13}}_[0-9a-z]{{9}}$"


def new_store(state=None):
    return EntityStore(ProcessGlobalBackend({} if state is None else state))


class FailingWriteBackend(ProcessGlobalBackend):
    def set_item(self, key, value):
        raise StorageError("disk full", key=key)


def test_fresh_store_is_empty_and_flagged():
    state = {}
    store = new_store(state)

    assert all(count == 0 for count in store.counts().values())
    assert len(store.counts()) == 12
    assert store.is_initialized
    assert state["memoryStorageInitialized"] == "true"
    assert store.last_storage_result.ok


def test_generate_id_shape():
    assert re.match(ID_PATTERN.format("team"), generate_id("team"))
    assert generate_id("team") != generate_id("team")


def test_create_assigns_id_and_timestamps():
    store = new_store()
    team = store.create_team({"name": "Sales", "budget": 1000})

    assert re.match(ID_PATTERN.format("team"), team["id"])
    assert team["createdAt"] == team["updatedAt"] == team["lastModified"]
    assert team["createdAt"].endswith("Z")
    assert store.list_teams() == [team]


def test_create_ignores_caller_id_and_timestamps():
    store = new_store()
    team = store.create(EntityKind.TEAMS, {
        "id": "mine",
        "name": "Ops",
        "createdAt": "1999-01-01T00:00:00.000Z",
    })

    assert team["id"] != "mine"
    assert team["createdAt"] != "1999-01-01T00:00:00.000Z"


def test_create_accepts_snake_case_and_keeps_extra_fields():
    store = new_store()
    member = store.create_member({"name": "M1", "team_id": "team_x", "team": {"id": "team_x", "name": "X"}})

    assert member["teamId"] == "team_x"
    assert "team_id" not in member
    assert member["team"] == {"id": "team_x", "name": "X"}


def test_team_member_salary_lifecycle():
    state = {}
    store = new_store(state)

    # 1. Build the graph
    sales = store.create_team({"name": "Sales"})
    m1 = store.create_member({"name": "M1", "teamId": sales["id"], "salary": 30000})
    s1 = store.create_salary({"memberId": m1["id"], "amount": 20000, "month": 1, "year": 2025})
    assert s1["status"] == "pending"

    # 2. Pay the salary
    paid = store.update_salary(s1["id"], {"status": "paid"})
    assert paid["status"] == "paid"
    assert paid["amount"] == 20000
    assert paid["createdAt"] == s1["createdAt"]
    assert paid["updatedAt"] >= s1["updatedAt"]
    assert paid["lastModified"] == paid["updatedAt"]
    assert store.get(EntityKind.SALARIES, s1["id"]) == paid

    # 3. Delete the team: no cascade
    removed = store.delete_team(sales["id"])
    assert removed["id"] == sales["id"]
    assert store.list_teams() == []
    assert store.list_members()[0]["teamId"] == sales["id"]
    assert {"collection": "members", "id": m1["id"], "field": "teamId", "missing": sales["id"]} in store.dangling_references()

    # 4. Everything survived in the persisted snapshot
    persisted = json.loads(state["businessData"])
    assert persisted["salaries"][0]["status"] == "paid"
    assert persisted["teams"] == []


def test_update_and_delete_of_unknown_id_return_none():
    store = new_store()
    store.create_team({"name": "A"})

    assert store.update_team("nope", {"name": "B"}) is None
    assert store.delete_team("nope") is None
    assert store.get(EntityKind.TEAMS, "nope") is None
    assert len(store.list_teams()) == 1


def test_delete_preserves_order_of_remaining_records():
    store = new_store()
    a = store.create_category({"name": "A", "type": "income"})
    b = store.create_category({"name": "B", "type": "expense"})
    c = store.create_category({"name": "C", "type": "income"})

    store.delete_category(b["id"])

    assert [r["id"] for r in store.list_categories()] == [a["id"], c["id"]]


def test_customer_counts_are_appended():
    store = new_store()
    first = store.create_customer_count({"newCustomers": 1})
    second = store.create_customer_count({"newCustomers": 2})

    assert [r["id"] for r in store.list_customer_counts()] == [first["id"], second["id"]]
    assert first["totalCustomers"] == 0


def test_list_returns_live_collection():
    store = new_store()
    teams = store.list(EntityKind.TEAMS)
    store.create_team({"name": "Live"})

    assert teams is store.list("teams")
    assert len(teams) == 1


def test_create_rejects_malformed_payloads():
    store = new_store()

    with pytest.raises(RecordValidationError) as excinfo:
        store.create_team({})
    assert excinfo.value.kind == "teams"
    assert excinfo.value.errors[0]["loc"] == ["name"]

    with pytest.raises(RecordValidationError):
        store.create_transaction({"amount": -5, "type": "income", "categoryId": "c1"})

    with pytest.raises(RecordValidationError):
        store.create_category({"name": "Bad", "type": "transfer"})

    assert store.list_teams() == []
    assert store.list_transactions() == []


def test_invalid_update_leaves_record_unchanged():
    store = new_store()
    bonus = store.create_bonus({"memberId": "m1", "amount": 100})

    with pytest.raises(RecordValidationError):
        store.update_bonus(bonus["id"], {"amount": -1})

    assert store.get(EntityKind.BONUSES, bonus["id"]) == bonus


def test_unknown_kind_raises():
    store = new_store()
    with pytest.raises(UnknownEntityKindError):
        store.list("invoices")
    assert store.list("customer-counts") is store.list(EntityKind.CUSTOMER_COUNTS)


def test_snapshot_round_trip_through_backend():
    state = {}
    store = new_store(state)
    team = store.create_team({"name": "Sales"})
    store.create_commission({"memberId": "m1", "amount": 500, "percentage": 5, "salesAmount": 10000})

    reopened = new_store(state)

    assert reopened.snapshot() == store.snapshot()
    assert reopened.get(EntityKind.TEAMS, team["id"]) == team
    assert set(json.loads(state["businessData"])) == {kind.value for kind in EntityKind}


def test_reset_clears_everything():
    state = {}
    store = new_store(state)
    store.load_sample_data()
    state["dataSyncTimestamp"] = "2025-01-01T00:00:00.000Z"
    state["lastGlobalSync"] = "2025-01-01T00:00:00.000Z"

    store.reset_all_data()

    assert all(count == 0 for count in store.counts().values())
    for key in ("businessData", "memoryStorageInitialized", "dataSyncTimestamp", "lastGlobalSync"):
        assert key not in state
    assert not store.is_initialized

    fresh = new_store(state)
    assert fresh.snapshot() == store.snapshot()


def test_load_sample_data_counts():
    store = new_store()
    counts = store.load_sample_data()

    assert counts == {
        "teams": 3,
        "members": 2,
        "customers": 2,
        "categories": 10,
        "transactions": 20,
        "salaries": 5,
        "bonuses": 5,
        "commissions": 5,
        "users": 0,
        "auditLogs": 0,
        "customerTransactions": 0,
        "customerCounts": 3,
    }
    assert store.is_initialized
    assert sum(1 for c in store.list_categories() if c["type"] == "income") == 5


def test_load_sample_data_twice_regenerates_ids():
    store = new_store()
    store.load_sample_data()
    first_ids = {r["id"] for records in store.snapshot().values() for r in records}

    counts = store.load_sample_data_manually()
    second_ids = {r["id"] for records in store.snapshot().values() for r in records}

    assert counts["transactions"] == 20
    assert len(second_ids) == len(first_ids) == 55
    assert first_ids.isdisjoint(second_ids)


def test_sample_data_references_are_remapped():
    store = new_store()
    store.load_sample_data()

    assert store.dangling_references() == []
    for team in store.list_teams():
        assert re.match(ID_PATTERN.format("team"), team["id"])
    for transaction in store.list_transactions():
        assert transaction["category"]["id"] == transaction["categoryId"]
    for member in store.list_members():
        assert member["team"]["id"] == member["teamId"]


def test_initialize_sample_data_leaves_flag_alone():
    state = {}
    store = new_store(state)
    store.reset_all_data()

    store.initialize_sample_data()

    assert store.counts()["teams"] == 3
    assert not store.is_initialized


def test_corrupt_blob_degrades_to_empty():
    store = new_store({"businessData": "{not json", "memoryStorageInitialized": "true"})

    assert all(count == 0 for count in store.counts().values())
    assert not store.last_storage_result.ok
    assert store.last_storage_result.operation == "load"


def test_blob_of_wrong_shape_degrades_to_empty():
    store = new_store({"businessData": json.dumps({"teams": "oops"})})

    assert store.list_teams() == []
    assert not store.last_storage_result.ok


def test_write_failure_is_reported_not_raised():
    store = EntityStore(FailingWriteBackend({}))
    team = store.create_team({"name": "Kept in memory"})

    assert store.list_teams() == [team]
    assert not store.last_storage_result.ok
    assert store.last_storage_result.operation == "save"
    assert "disk full" in store.last_storage_result.reason


def test_export_and_import_snapshot():
    state = {}
    source = new_store(state)
    source.load_sample_data()
    exported = source.export_snapshot()
    exported["teams"].clear()
    assert len(source.list_teams()) == 3

    target = new_store()
    applied = target.import_snapshot(source.export_snapshot())

    assert set(applied) == {kind.value for kind in EntityKind}
    assert target.snapshot() == source.snapshot()
    assert target.backend.get_item("dataSyncTimestamp").endswith("Z")


def test_import_snapshot_rejects_non_list_collections():
    store = new_store()
    with pytest.raises(RecordValidationError):
        store.import_snapshot({"teams": {"id": "x"}})


def test_rejected_import_leaves_memory_and_storage_untouched():
    state = {}
    store = new_store(state)
    keep = store.create_team({"name": "Keep"})

    with pytest.raises(RecordValidationError) as excinfo:
        store.import_snapshot({"teams": [], "members": "oops"})

    assert excinfo.value.kind == "members"
    assert store.list_teams() == [keep]
    assert json.loads(state["businessData"])["teams"] == [keep]
    assert "dataSyncTimestamp" not in state


def test_import_snapshot_rejects_non_object_records():
    store = new_store()
    keep = store.create_team({"name": "Keep"})

    with pytest.raises(RecordValidationError) as excinfo:
        store.import_snapshot({"teams": [{"id": "t1", "name": "ok"}, 1, "x"]})

    assert [e["loc"] for e in excinfo.value.errors] == [["teams", 1], ["teams", 2]]
    assert store.list_teams() == [keep]
    assert store.get("teams", "whatever") is None


def test_blob_with_non_object_records_degrades_to_empty():
    store = new_store({"businessData": json.dumps({"teams": [1]}), "memoryStorageInitialized": "true"})

    assert store.list_teams() == []
    assert not store.last_storage_result.ok
    assert store.get("teams", "x") is None
    assert store.dangling_references() == []


def test_reset_clears_an_earlier_storage_failure():
    state = {}
    store = new_store(state)
    store.last_storage_result = StorageResult.failure("save", "disk full")

    store.reset_all_data()

    assert store.last_storage_result.ok
    assert store.last_storage_result.operation == "reset"


def test_reset_reports_removal_failure():
    class FailingRemoveBackend(ProcessGlobalBackend):
        def remove_item(self, key):
            raise StorageError("read-only", key=key)

    store = EntityStore(FailingRemoveBackend({}))
    store.reset_all_data()

    assert not store.last_storage_result.ok
    assert store.last_storage_result.operation == "remove"


def test_default_store_is_a_singleton():
    reset_default_store()
    try:
        assert get_default_store() is get_default_store()
    finally:
        reset_default_store()


def test_replace_swaps_collection_and_persists():
    state = {}
    store = new_store(state)
    store.create_team({"name": "Old"})

    store.replace("teams", [{"id": "team_1", "name": "New"}])

    assert [t["name"] for t in store.list_teams()] == ["New"]
    assert json.loads(state["businessData"])["teams"] == [{"id": "team_1", "name": "New"}]
