from fastapi.testclient import TestClient
import hashlib

from backoffice.core.middleware import action_type_for
from backoffice.db.backends import ProcessGlobalBackend
from backoffice.db.store import EntityStore
from backoffice.main import create_app
from backoffice.schemas.audit import AuditStatus

store = EntityStore(ProcessGlobalBackend({}))
client = TestClient(create_app(store))


def test_action_types():
    assert action_type_for("POST", "/teams") == "CREATE_TEAMS"
    assert action_type_for("PUT", "/customer-counts/abc") == "UPDATE_CUSTOMER_COUNTS"
    assert action_type_for("DELETE", "/salaries/abc") == "DELETE_SALARIES"


def test_mutations_are_audited():
    store.reset_all_data()

    # 1. Successful create, with an explicit actor
    body = b'{"name": "Audited"}'
    response = client.post("/teams", content=body, headers={"Content-Type": "application/json", "X-Actor": "owner@example.com"})
    assert response.status_code == 201
    # The endpoint still sees the body the middleware already read
    assert response.json()["name"] == "Audited"

    logs = client.get("/audit-logs").json()
    assert len(logs) == 1
    log = logs[0]
    assert log["endpoint"] == "/teams"
    assert log["method"] == "POST"
    assert log["actionType"] == "CREATE_TEAMS"
    assert log["actor"] == "owner@example.com"
    assert log["status"] == AuditStatus.SUCCESS.value
    assert log["inputHash"] == hashlib.sha256(body).hexdigest()
    assert log["outputHash"] == hashlib.sha256(response.content).hexdigest()
    assert log["id"].startswith("audit_log_")

    # 2. Rejected update is logged as a failure by the default actor
    client.put("/teams/unknown", json={"name": "x"})
    failure = store.list_audit_logs()[-1]
    assert failure["status"] == AuditStatus.FAILURE.value
    assert failure["actor"] == "system"


def test_reads_and_maintenance_are_not_audited():
    store.reset_all_data()

    client.get("/teams")
    client.get("/health")
    client.post("/load-sample-data")
    client.post("/reset")

    assert store.list_audit_logs() == []
    assert all(count == 0 for count in store.counts().values())
