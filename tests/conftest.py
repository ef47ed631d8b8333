"""
Shared fixtures for the clinic archive test suite.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

import pytest

from clinic_archive.clients.records import RpcRecordSource
from clinic_archive.clients.rpc import RpcTransport
from clinic_archive.core.exceptions import TransportError
from clinic_archive.models import Actor, ActorRole
from clinic_archive.services.domains import create_appointment_store
from clinic_archive.services.gateway import LifecycleGateway

RECORDS_FUNCTION = "get_appointments_by_role"


class FakeBackend(RpcTransport):
    """
    In-memory stand-in for the managed backend.

    Serves the archive procedures and one record listing. Archive rows are
    keyed by item id; hidden ids never appear in listings again.
    """

    def __init__(self, records: List[Dict[str, Any]]):
        self.records = list(records)
        self.archived: Dict[str, str] = {}
        self.hidden: Set[str] = set()
        self.calls: List[tuple] = []
        self.reject_ids: Set[str] = set()
        self.transport_down = False
        self.gate: Optional[asyncio.Event] = None

    def archive_call_count(self, action: Optional[str] = None) -> int:
        return sum(
            1 for function, params in self.calls
            if function != RECORDS_FUNCTION and (action is None or params.get("p_action") == action)
        )

    async def call(self, function: str, params: Dict[str, Any]) -> Any:
        self.calls.append((function, dict(params)))
        if self.transport_down:
            raise TransportError("Connection reset by peer")
        if function == RECORDS_FUNCTION:
            return self._list_records(params)
        if params.get("p_action") in ("archive", "unarchive", "hide") and self.gate is not None:
            await self.gate.wait()
        return self._archive_action(params)

    def _list_records(self, params):
        visible = [r for r in self.records if str(r["id"]) not in self.hidden]
        offset, limit = params["p_offset"], params["p_limit"]
        page = visible[offset:offset + limit]
        return {
            "success": True,
            "data": {
                "items": [dict(r) for r in page],
                "pagination": {
                    "totalCount": len(visible),
                    "hasMore": offset + len(page) < len(visible),
                },
            },
        }

    def _archive_action(self, params):
        action = params["p_action"]
        item_type = params.get("p_item_type")
        ids = [params["p_item_id"]] if params.get("p_item_id") else list(params.get("p_item_ids") or [])

        if action == "list_archived":
            return {
                "success": True,
                "data": [
                    {"item_id": i, "item_type": item_type, "archived_at": ts}
                    for i, ts in self.archived.items()
                ],
            }
        if action == "list_hidden":
            return {"success": True, "data": [{"item_id": i, "item_type": item_type} for i in self.hidden]}
        if action == "get_stats":
            return {"success": True, "data": {"archived_counts": {"appointments": len(self.archived)}}}

        for item_id in ids:
            if item_id in self.reject_ids:
                return {"success": False, "error": f"Cannot {action} {item_id}"}

        now = datetime.now(timezone.utc).isoformat()
        for item_id in ids:
            if action == "archive":
                self.archived[item_id] = now
            elif action == "unarchive":
                if item_id not in self.archived:
                    return {"success": False, "error": "Item is not archived"}
                del self.archived[item_id]
            elif action == "hide":
                if item_id not in self.archived:
                    return {"success": False, "error": "Only archived items can be hidden"}
                del self.archived[item_id]
                self.hidden.add(item_id)
        return {"success": True, "message": f"{action} ok", "data": {"affected": len(ids)}}


def make_appointments(count: int, status: str = "completed") -> List[Dict[str, Any]]:
    return [
        {"id": f"apt-{n}", "status": status, "is_archived": False, "notes": f"visit {n}"}
        for n in range(1, count + 1)
    ]


@pytest.fixture
def patient():
    return Actor(role=ActorRole.PATIENT, user_id="patient-1")


@pytest.fixture
def staff():
    return Actor(role=ActorRole.STAFF, user_id="staff-1", clinic_id="clinic-1")


@pytest.fixture
def admin():
    return Actor(role=ActorRole.ADMIN, user_id="admin-1")


@pytest.fixture
def appointments():
    records = make_appointments(5)
    records[2]["status"] = "pending"
    records[4]["status"] = "cancelled"
    return records


@pytest.fixture
def backend(appointments):
    return FakeBackend(appointments)


@pytest.fixture
def gateway(backend, patient):
    return LifecycleGateway(backend, patient)


@pytest.fixture
def record_source(backend):
    return RpcRecordSource(backend, RECORDS_FUNCTION, items_key="appointments")


@pytest.fixture
def store(gateway, record_source):
    return create_appointment_store(gateway, record_source, page_limit=10)
