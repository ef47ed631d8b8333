"""
Lifecycle Domain Models
Closed enums and value types shared by the resolver, gateway and stores
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError


class ItemType(str, Enum):
    """Record categories that can move through the archive lifecycle"""
    APPOINTMENT = "appointment"
    FEEDBACK = "feedback"
    NOTIFICATION = "notification"
    CLINIC_APPOINTMENT = "clinic_appointment"
    CLINIC_FEEDBACK = "clinic_feedback"
    STAFF_NOTIFICATION = "staff_notification"
    PATIENT_COMMUNICATION = "patient_communication"
    USER_ACCOUNT = "user_account"
    CLINIC_ACCOUNT = "clinic_account"
    SYSTEM_NOTIFICATION = "system_notification"
    ANALYTICS_DATA = "analytics_data"
    PARTNERSHIP_REQUEST = "partnership_request"


class ActorRole(str, Enum):
    PATIENT = "patient"
    STAFF = "staff"
    ADMIN = "admin"


class Scope(str, Enum):
    """Breadth of records an actor may affect"""
    SELF = "self"
    CLINIC = "clinic"
    SYSTEM = "system"


class Action(str, Enum):
    """Remote lifecycle actions"""
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"
    HIDE = "hide"
    LIST_ARCHIVED = "list_archived"
    LIST_HIDDEN = "list_hidden"
    GET_PERMISSIONS = "get_permissions"
    GET_STATS = "get_stats"

    @property
    def is_item_targeted(self) -> bool:
        return self in (Action.ARCHIVE, Action.UNARCHIVE, Action.HIDE)

    @property
    def supports_batch(self) -> bool:
        # hide is irreversible and never batched implicitly
        return self in (Action.ARCHIVE, Action.UNARCHIVE)

    @property
    def requires_grant(self) -> bool:
        """get_* actions are actor-level and not tied to an item type"""
        return self not in (Action.GET_PERMISSIONS, Action.GET_STATS)


# Actions that appear in permission grants
GRANTABLE_ACTIONS: frozenset = frozenset(a for a in Action if a.requires_grant)


class LifecycleState(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    HIDDEN = "hidden"  # terminal


class ErrorCode(str, Enum):
    """Error taxonomy returned in failed results"""
    INVALID_ARGUMENT = "InvalidArgument"
    PERMISSION_DENIED = "PermissionDenied"
    NOT_FOUND = "NotFound"
    INVALID_STATE = "InvalidState"
    REMOTE_REJECTED = "RemoteRejected"
    TRANSPORT_ERROR = "TransportError"


@dataclass(frozen=True)
class ItemRef:
    """(item_type, item_id) pair identifying a record across the subsystem"""
    item_type: ItemType
    item_id: str

    def __str__(self) -> str:
        return f"{self.item_type.value}:{self.item_id}"


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    user_id: str
    clinic_id: Optional[str] = None


@dataclass(frozen=True)
class CallOptions:
    """
    Per-call options for lifecycle requests.

    scope_override: narrower scope to act under. None (default) means the
        scope resolved for (role, item_type). Whether an override is accepted
        is decided by the permission resolver, never by the caller.
    """
    scope_override: Optional[Scope] = None


@dataclass(frozen=True)
class PermissionGrant:
    """Static (role, item_type) permission entry"""
    allowed_actions: frozenset
    scope: Scope
    overridable_scopes: frozenset = frozenset()

    def allows(self, action: Action) -> bool:
        return action in self.allowed_actions


_DATETIME = TypeAdapter(datetime)


@dataclass
class ArchiveRecord:
    """Server-side archive row; its existence means the item is archived"""
    item_ref: ItemRef
    actor_id: Optional[str] = None
    scope: Optional[Scope] = None
    archived_at: Optional[datetime] = None
    reason: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], default_type: Optional[ItemType] = None) -> "ArchiveRecord":
        raw_type = payload.get("item_type") or default_type
        if raw_type is None:
            raise ValueError("Archive record payload has no item_type")
        archived_at = payload.get("archived_at")
        if archived_at is not None and not isinstance(archived_at, datetime):
            try:
                archived_at = _DATETIME.validate_python(archived_at)
            except ValidationError:
                # unparseable timestamp: keep the row without it
                archived_at = None
        if isinstance(archived_at, datetime) and archived_at.tzinfo is None:
            archived_at = archived_at.replace(tzinfo=timezone.utc)
        scope = payload.get("scope_type") or payload.get("scope")
        return cls(
            item_ref=ItemRef(ItemType(raw_type), str(payload["item_id"])),
            actor_id=payload.get("archived_by") or payload.get("actor_id"),
            scope=Scope(scope) if scope in Scope._value2member_map_ else None,
            archived_at=archived_at,
            reason=payload.get("archive_reason") or payload.get("reason"),
        )


@dataclass
class PaginationState:
    """Offset-based cursor for a store's record fetches"""
    limit: int
    offset: int = 0
    total_count: int = 0
    has_more: bool = False

    def advance(self, returned: int, total_count: Optional[int], server_has_more: bool = False) -> None:
        """
        Move the cursor by the number of records the page actually held.

        Without a total from the server, its has_more flag is trusted and the
        total is the number of records seen so far.
        """
        self.offset += returned
        if total_count is None:
            self.has_more = bool(server_has_more) and returned > 0
            self.total_count = self.offset
        else:
            self.total_count = total_count
            # an empty page ends paging even if the total disagrees
            self.has_more = returned > 0 and self.offset < total_count

    def retract(self, count: int = 1) -> None:
        """Account for records removed server-side from the already fetched window"""
        self.offset = max(0, self.offset - count)
        self.total_count = max(0, self.total_count - count)

    def reset(self) -> None:
        self.offset = 0
        self.total_count = 0
        self.has_more = False


@dataclass
class LifecycleResult:
    """Uniform outcome of a gateway call or store operation"""
    success: bool
    data: Any = None
    message: Optional[str] = None
    error: Optional[ErrorCode] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "LifecycleResult":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: ErrorCode, message: str) -> "LifecycleResult":
        return cls(success=False, error=error, message=message)

    def raise_for_error(self) -> "LifecycleResult":
        """Raise the exception matching ``error`` if the call failed"""
        if not self.success:
            from clinic_archive.core.exceptions import error_for_code
            raise error_for_code(self.error, self.message)
        return self

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "message": self.message, "data": self.data}
        return {"success": False, "error": self.error.value, "message": self.message}


@dataclass
class BatchItemResult:
    item_id: str
    result: LifecycleResult


@dataclass
class BatchResult:
    """Settle-all summary; successful + failed == total always holds"""
    total: int = 0
    successful: int = 0
    failed: int = 0
    results: List[BatchItemResult] = field(default_factory=list)

    @classmethod
    def settle(cls, results: List[BatchItemResult]) -> "BatchResult":
        successful = sum(1 for r in results if r.result.success)
        return cls(
            total=len(results),
            successful=successful,
            failed=len(results) - successful,
            results=results,
        )

    @property
    def succeeded_ids(self) -> List[str]:
        return [r.item_id for r in self.results if r.result.success]

    @property
    def failed_ids(self) -> List[str]:
        return [r.item_id for r in self.results if not r.result.success]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "perItemResults": {r.item_id: r.result.to_dict() for r in self.results},
        }
