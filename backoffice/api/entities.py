from fastapi import APIRouter, Body, Depends, HTTPException
from typing import Any, Dict, List
import logging

from backoffice.api.deps import get_store
from backoffice.core.errors import RecordValidationError
from backoffice.db.store import EntityStore
from backoffice.schemas.entities import CRUD_KINDS, EntityKind

router = APIRouter()
logger = logging.getLogger(__name__)


def _bad_request(e: RecordValidationError) -> HTTPException:
    return HTTPException(status_code=400, detail={"message": str(e), "errors": e.errors})


def _not_found(kind: EntityKind, record_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind.value} record '{record_id}' not found")


def _with_members(store: EntityStore, teams: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    members = store.list(EntityKind.MEMBERS)
    return [{**team, "members": [m for m in members if m.get("teamId") == team.get("id")]} for team in teams]


def register_crud_routes(router: APIRouter, kind: EntityKind) -> None:
    """List / create / read / update / delete routes for one collection."""
    path = f"/{kind.slug}"

    @router.get(path, name=f"list_{kind.id_prefix}")
    async def list_records(store: EntityStore = Depends(get_store)):
        records = store.list(kind)
        if kind == EntityKind.TEAMS:
            return _with_members(store, records)
        return records

    @router.post(path, status_code=201, name=f"create_{kind.id_prefix}")
    async def create_record(payload: Dict[str, Any] = Body(...), store: EntityStore = Depends(get_store)):
        try:
            return store.create(kind, payload)
        except RecordValidationError as e:
            logger.info(f"Rejected {kind.value} create: {e}")
            raise _bad_request(e)

    @router.get(path + "/{record_id}", name=f"get_{kind.id_prefix}")
    async def get_record(record_id: str, store: EntityStore = Depends(get_store)):
        record = store.get(kind, record_id)
        if record is None:
            raise _not_found(kind, record_id)
        return record

    @router.put(path + "/{record_id}", name=f"update_{kind.id_prefix}")
    async def update_record(record_id: str, payload: Dict[str, Any] = Body(...), store: EntityStore = Depends(get_store)):
        try:
            record = store.update(kind, record_id, payload)
        except RecordValidationError as e:
            logger.info(f"Rejected {kind.value} update of {record_id}: {e}")
            raise _bad_request(e)
        if record is None:
            raise _not_found(kind, record_id)
        return record

    @router.delete(path + "/{record_id}", name=f"delete_{kind.id_prefix}")
    async def delete_record(record_id: str, store: EntityStore = Depends(get_store)):
        record = store.delete(kind, record_id)
        if record is None:
            raise _not_found(kind, record_id)
        return record


for _kind in CRUD_KINDS:
    register_crud_routes(router, _kind)


@router.get("/users")
async def list_users(store: EntityStore = Depends(get_store)):
    return store.list(EntityKind.USERS)


@router.get("/audit-logs")
async def list_audit_logs(store: EntityStore = Depends(get_store)):
    return store.list(EntityKind.AUDIT_LOGS)
