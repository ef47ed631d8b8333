"""
Canonical archive permission table for the clinic portal.
"""

from __future__ import annotations

from typing import Dict, Iterable, Tuple

from clinic_archive.models import (
    Action,
    ActorRole,
    GRANTABLE_ACTIONS,
    ItemType,
    PermissionGrant,
    Scope,
)


PERSONAL_ITEM_TYPES: tuple[ItemType, ...] = (
    ItemType.APPOINTMENT,
    ItemType.FEEDBACK,
    ItemType.NOTIFICATION,
)

CLINIC_ITEM_TYPES: tuple[ItemType, ...] = (
    ItemType.CLINIC_APPOINTMENT,
    ItemType.CLINIC_FEEDBACK,
    ItemType.STAFF_NOTIFICATION,
    ItemType.PATIENT_COMMUNICATION,
)

SYSTEM_ITEM_TYPES: tuple[ItemType, ...] = (
    ItemType.USER_ACCOUNT,
    ItemType.CLINIC_ACCOUNT,
    ItemType.SYSTEM_NOTIFICATION,
    ItemType.ANALYTICS_DATA,
    ItemType.PARTNERSHIP_REQUEST,
)

# Staff may not permanently hide records shared with the whole clinic
CLINIC_STAFF_ACTIONS: frozenset = frozenset({
    Action.ARCHIVE,
    Action.UNARCHIVE,
    Action.LIST_ARCHIVED,
    Action.LIST_HIDDEN,
})

PermissionTable = Dict[Tuple[ActorRole, ItemType], PermissionGrant]


def _grant(actions: Iterable[Action], scope: Scope, overrides: Iterable[Scope] = ()) -> PermissionGrant:
    return PermissionGrant(
        allowed_actions=frozenset(actions),
        scope=scope,
        overridable_scopes=frozenset(overrides),
    )


def build_permission_table() -> PermissionTable:
    """
    Build the static (role, item_type) grant table.

    - Patients act on their own records only and cannot override scope.
    - Staff act on their own records, and on clinic records at clinic scope
      (narrowing to self is allowed).
    - Admins act system-wide on everything and may narrow to clinic or self.
    """
    table: PermissionTable = {}

    for item_type in PERSONAL_ITEM_TYPES:
        table[(ActorRole.PATIENT, item_type)] = _grant(GRANTABLE_ACTIONS, Scope.SELF)
        table[(ActorRole.STAFF, item_type)] = _grant(GRANTABLE_ACTIONS, Scope.SELF)

    for item_type in CLINIC_ITEM_TYPES:
        table[(ActorRole.STAFF, item_type)] = _grant(CLINIC_STAFF_ACTIONS, Scope.CLINIC, (Scope.SELF,))

    for item_type in ItemType:
        table[(ActorRole.ADMIN, item_type)] = _grant(
            GRANTABLE_ACTIONS, Scope.SYSTEM, (Scope.CLINIC, Scope.SELF)
        )

    return table


def supported_item_types(table: PermissionTable, role: ActorRole) -> list[ItemType]:
    return [item_type for item_type in ItemType if (role, item_type) in table]
