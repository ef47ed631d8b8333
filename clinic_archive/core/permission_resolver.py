"""
Permission resolver for archive lifecycle actions.

Pure lookups over closed enums: no I/O, and values outside ActorRole or
ItemType are programming errors that raise ValueError instead of being
silently denied. Scope overrides are accepted or refused here and nowhere
else.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from clinic_archive.core.exceptions import PermissionDeniedError
from clinic_archive.core.permissions import (
    PermissionTable,
    build_permission_table,
    supported_item_types,
)
from clinic_archive.models import Action, ActorRole, ItemType, PermissionGrant, Scope


class PermissionResolver(ABC):
    @abstractmethod
    def resolve(self, role: ActorRole, item_type: ItemType) -> Optional[PermissionGrant]:
        """Return the grant for (role, item_type), or None when not permitted"""
        raise NotImplementedError

    @abstractmethod
    def describe(self, role: ActorRole) -> dict[str, Any]:
        raise NotImplementedError

    def is_allowed(self, role: ActorRole, item_type: ItemType, action: Action) -> bool:
        grant = self.resolve(role, item_type)
        return grant is not None and grant.allows(Action(action))

    def effective_scope(
        self,
        role: ActorRole,
        item_type: ItemType,
        override: Optional[Scope] = None,
    ) -> Scope:
        """
        Scope an actor operates under for item_type.

        Raises:
            PermissionDeniedError: no grant, or the override is not allowed
        """
        grant = self.resolve(role, item_type)
        if grant is None:
            raise PermissionDeniedError(f"Role '{ActorRole(role).value}' has no access to '{ItemType(item_type).value}'")
        if override is None:
            return grant.scope
        override = Scope(override)
        if override == grant.scope or override in grant.overridable_scopes:
            return override
        raise PermissionDeniedError(
            f"Scope override '{override.value}' is not allowed for role "
            f"'{ActorRole(role).value}' on '{ItemType(item_type).value}'"
        )

    def check(
        self,
        role: ActorRole,
        item_type: ItemType,
        action: Action,
        override: Optional[Scope] = None,
    ) -> Scope:
        """Authorize action and return the scope it runs under"""
        action = Action(action)
        scope = self.effective_scope(role, item_type, override)
        if not self.is_allowed(role, item_type, action):
            raise PermissionDeniedError(
                f"Action '{action.value}' is not allowed for role "
                f"'{ActorRole(role).value}' on '{ItemType(item_type).value}'"
            )
        return scope


class StaticPermissionResolver(PermissionResolver):
    def __init__(self, table: Optional[PermissionTable] = None):
        self._table = table if table is not None else build_permission_table()

    def resolve(self, role: ActorRole, item_type: ItemType) -> Optional[PermissionGrant]:
        return self._table.get((ActorRole(role), ItemType(item_type)))

    def describe(self, role: ActorRole) -> dict[str, Any]:
        role = ActorRole(role)
        grants = {}
        for item_type in supported_item_types(self._table, role):
            grant = self._table[(role, item_type)]
            grants[item_type.value] = {
                "actions": sorted(a.value for a in grant.allowed_actions),
                "scope": grant.scope.value,
                "scope_overrides": sorted(s.value for s in grant.overridable_scopes),
            }
        return {
            "role": role.value,
            "allowed_item_types": list(grants),
            "grants": grants,
            "capabilities": {
                "can_override_scope": any(g["scope_overrides"] for g in grants.values()),
                "can_hide": any(Action.HIDE.value in g["actions"] for g in grants.values()),
            },
        }


permission_resolver = StaticPermissionResolver()
