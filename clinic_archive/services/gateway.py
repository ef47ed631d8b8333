"""
Lifecycle Gateway
Single entry point turning lifecycle requests into one remote call each
"""

from typing import Any, Iterable, List, Optional, Union

import structlog

from clinic_archive.clients.rpc import RpcTransport
from clinic_archive.core.config import settings
from clinic_archive.core.exceptions import (
    InvalidArgumentError,
    LifecycleError,
    PermissionDeniedError,
    TransportError,
)
from clinic_archive.core.permission_resolver import PermissionResolver, permission_resolver
from clinic_archive.models import (
    Action,
    Actor,
    ActorRole,
    ArchiveRecord,
    CallOptions,
    ErrorCode,
    ItemRef,
    ItemType,
    LifecycleResult,
)

logger = structlog.get_logger()

Target = Union[str, int, Iterable[Union[str, int]]]

SUCCESS_MESSAGES = {
    Action.ARCHIVE: "Item archived",
    Action.UNARCHIVE: "Item restored",
    Action.HIDE: "Item permanently hidden",
    Action.LIST_ARCHIVED: "Archived items loaded",
    Action.LIST_HIDDEN: "Hidden items loaded",
    Action.GET_PERMISSIONS: "Permissions loaded",
    Action.GET_STATS: "Archive statistics loaded",
}


class LifecycleGateway:
    """
    Validates, authorizes and issues lifecycle calls for one actor.

    Every ``execute`` makes at most one remote call and never retries.
    Invalid arguments and permission failures are answered locally without
    touching the network. Remote outcomes are normalized into
    LifecycleResult; only unknown enum values raise (ValueError).
    """

    def __init__(
        self,
        transport: RpcTransport,
        actor: Actor,
        resolver: Optional[PermissionResolver] = None,
        patient_function: Optional[str] = None,
        staff_function: Optional[str] = None,
    ):
        self.transport = transport
        self.actor = actor
        self.resolver = resolver or permission_resolver
        self.patient_function = patient_function or settings.PATIENT_ARCHIVE_FUNCTION
        self.staff_function = staff_function or settings.STAFF_ARCHIVE_FUNCTION

    @property
    def function_name(self) -> str:
        if self.actor.role == ActorRole.PATIENT:
            return self.patient_function
        return self.staff_function

    # ==================== Core ====================

    async def execute(
        self,
        action: Action,
        item_type: Optional[ItemType] = None,
        target: Optional[Target] = None,
        options: Optional[CallOptions] = None,
    ) -> LifecycleResult:
        action = Action(action)
        item_type = ItemType(item_type) if item_type is not None else None
        options = options or CallOptions()

        try:
            params = self._build_params(action, item_type, target, options)
        except LifecycleError as e:
            logger.info(
                "Lifecycle call rejected locally",
                action=action.value,
                item_type=item_type.value if item_type else None,
                error=e.code.value,
                reason=e.message,
                actor=self.actor,
            )
            return LifecycleResult.fail(e.code, e.message)

        return await self._call(action, item_type, params)

    def authorize(
        self,
        action: Action,
        item_type: Optional[ItemType],
        options: Optional[CallOptions] = None,
    ) -> None:
        """
        Raise PermissionDeniedError unless the actor may run action.

        Calls without an item type (listing or stats across types) are
        allowed when at least one granted type permits the action, and a
        scope override must be acceptable for every such type.
        """
        action = Action(action)
        override = options.scope_override if options else None
        role = self.actor.role

        if item_type is not None:
            if action.requires_grant:
                self.resolver.check(role, item_type, action, override)
            elif override is not None:
                self.resolver.effective_scope(role, item_type, override)
            return

        candidates = [t for t in ItemType if self.resolver.resolve(role, t) is not None]
        if action.requires_grant:
            candidates = [t for t in candidates if self.resolver.is_allowed(role, t, action)]
        if not candidates:
            raise PermissionDeniedError(f"Action '{action.value}' is not allowed for role '{role.value}'")
        if override is not None:
            for candidate in candidates:
                self.resolver.effective_scope(role, candidate, override)

    def _build_params(
        self,
        action: Action,
        item_type: Optional[ItemType],
        target: Optional[Target],
        options: CallOptions,
    ) -> dict:
        item_id = None
        item_ids = None

        if action.is_item_targeted:
            if item_type is None:
                raise InvalidArgumentError("Item type is required")
            if target is None:
                raise InvalidArgumentError("Item ID is required")
            if isinstance(target, (str, int)):
                item_id = self._normalize_id(target)
            else:
                item_ids = [self._normalize_id(t) for t in target]
                if not item_ids:
                    raise InvalidArgumentError("A non-empty list of item IDs is required")
                if not action.supports_batch:
                    raise InvalidArgumentError(f"Action '{action.value}' cannot be applied to multiple items")
        elif target is not None:
            raise InvalidArgumentError(f"Action '{action.value}' does not take item IDs")

        self.authorize(action, item_type, options)

        params = {
            "p_action": action.value,
            "p_item_type": item_type.value if item_type else None,
            "p_item_id": item_id,
            "p_item_ids": item_ids,
        }
        # The personal archive procedure has no scope parameter
        if self.actor.role != ActorRole.PATIENT:
            params["p_scope_override"] = options.scope_override.value if options.scope_override else None
        return params

    @staticmethod
    def _normalize_id(value: Union[str, int]) -> str:
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise InvalidArgumentError(f"Invalid item ID: {value!r}")
        normalized = str(value).strip()
        if not normalized:
            raise InvalidArgumentError("Item ID is required")
        return normalized

    async def _call(self, action: Action, item_type: Optional[ItemType], params: dict) -> LifecycleResult:
        log = logger.bind(
            action=action.value,
            item_type=item_type.value if item_type else None,
            function=self.function_name,
        )
        try:
            payload = await self.transport.call(self.function_name, params)
        except TransportError as e:
            log.warning("Lifecycle call failed in transport", error=e.message, actor=self.actor)
            return LifecycleResult.fail(ErrorCode.TRANSPORT_ERROR, e.message)

        result = self._normalize(action, payload)
        if result.success:
            log.info("Lifecycle call succeeded", actor=self.actor)
        else:
            log.warning("Lifecycle call rejected by backend", error=result.message, actor=self.actor)
        return result

    def _normalize(self, action: Action, payload: Any) -> LifecycleResult:
        if not isinstance(payload, dict):
            return LifecycleResult.fail(ErrorCode.REMOTE_REJECTED, f"Operation {action.value} failed")
        if payload.get("authenticated") is False:
            return LifecycleResult.fail(ErrorCode.REMOTE_REJECTED, "Authentication required")
        if payload.get("success") is not True:
            error = payload.get("error") or payload.get("message") or f"Operation {action.value} failed"
            return LifecycleResult.fail(ErrorCode.REMOTE_REJECTED, str(error))

        data = payload.get("data")
        if action in (Action.LIST_ARCHIVED, Action.LIST_HIDDEN):
            if isinstance(data, dict):
                data = data.get("items") or []
            data = list(data or [])
        elif action in (Action.GET_PERMISSIONS, Action.GET_STATS):
            data = data or {}

        return LifecycleResult.ok(data=data, message=payload.get("message") or SUCCESS_MESSAGES[action])

    # ==================== Conveniences ====================

    async def archive(self, item_type: ItemType, target: Target, options: Optional[CallOptions] = None) -> LifecycleResult:
        return await self.execute(Action.ARCHIVE, item_type, target, options)

    async def unarchive(self, item_type: ItemType, target: Target, options: Optional[CallOptions] = None) -> LifecycleResult:
        return await self.execute(Action.UNARCHIVE, item_type, target, options)

    async def hide(self, item_type: ItemType, item_id: Union[str, int], options: Optional[CallOptions] = None) -> LifecycleResult:
        return await self.execute(Action.HIDE, item_type, item_id, options)

    async def list_archived(self, item_type: Optional[ItemType] = None, options: Optional[CallOptions] = None) -> LifecycleResult:
        return await self.execute(Action.LIST_ARCHIVED, item_type, None, options)

    async def list_hidden(self, item_type: Optional[ItemType] = None, options: Optional[CallOptions] = None) -> LifecycleResult:
        return await self.execute(Action.LIST_HIDDEN, item_type, None, options)

    async def get_stats(self, item_type: Optional[ItemType] = None, options: Optional[CallOptions] = None) -> LifecycleResult:
        return await self.execute(Action.GET_STATS, item_type, None, options)

    async def get_permissions(self) -> LifecycleResult:
        """Patients get the static local description; other roles ask the backend"""
        if self.actor.role == ActorRole.PATIENT:
            return LifecycleResult.ok(
                data=self.resolver.describe(self.actor.role),
                message=SUCCESS_MESSAGES[Action.GET_PERMISSIONS],
            )
        return await self.execute(Action.GET_PERMISSIONS)

    async def archived_records(self, item_type: ItemType, options: Optional[CallOptions] = None) -> LifecycleResult:
        """list_archived with entries parsed into ArchiveRecord for item_type"""
        item_type = ItemType(item_type)
        result = await self.list_archived(item_type, options)
        if not result.success:
            return result
        try:
            records = parse_archive_records(result.data, item_type)
        except (KeyError, ValueError) as e:
            return LifecycleResult.fail(ErrorCode.REMOTE_REJECTED, f"Malformed archive record: {e}")
        return LifecycleResult.ok(data=records, message=result.message)


def parse_archive_records(entries: List[Any], item_type: ItemType) -> List[ArchiveRecord]:
    """
    Parse list_archived entries. Entries may be archive rows or bare ids;
    rows belonging to another item type are skipped.
    """
    records = []
    for entry in entries:
        if isinstance(entry, dict):
            record = ArchiveRecord.from_payload(entry, default_type=item_type)
            if record.item_ref.item_type != item_type:
                continue
        else:
            record = ArchiveRecord(item_ref=ItemRef(item_type, str(entry)))
        records.append(record)
    return records
