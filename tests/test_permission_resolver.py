"""
Tests for the static permission resolver.
"""

import pytest

from clinic_archive.core.exceptions import PermissionDeniedError
from clinic_archive.core.permission_resolver import StaticPermissionResolver, permission_resolver
from clinic_archive.models import Action, ActorRole, ItemType, Scope


@pytest.fixture
def resolver():
    return StaticPermissionResolver()


class TestResolve:

    def test_patient_personal_types_are_self_scoped(self, resolver):
        for item_type in (ItemType.APPOINTMENT, ItemType.FEEDBACK, ItemType.NOTIFICATION):
            grant = resolver.resolve(ActorRole.PATIENT, item_type)
            assert grant is not None
            assert grant.scope == Scope.SELF
            assert grant.overridable_scopes == frozenset()
            assert grant.allows(Action.HIDE)

    def test_patient_has_no_clinic_types(self, resolver):
        assert resolver.resolve(ActorRole.PATIENT, ItemType.CLINIC_APPOINTMENT) is None
        assert resolver.resolve(ActorRole.PATIENT, ItemType.USER_ACCOUNT) is None

    def test_staff_clinic_types_cannot_be_hidden(self, resolver):
        grant = resolver.resolve(ActorRole.STAFF, ItemType.CLINIC_FEEDBACK)
        assert grant.scope == Scope.CLINIC
        assert grant.allows(Action.ARCHIVE)
        assert not grant.allows(Action.HIDE)

    def test_admin_is_system_wide_for_every_type(self, resolver):
        for item_type in ItemType:
            grant = resolver.resolve(ActorRole.ADMIN, item_type)
            assert grant.scope == Scope.SYSTEM

    def test_unknown_values_fail_loudly(self, resolver):
        with pytest.raises(ValueError):
            resolver.resolve("dentist", ItemType.APPOINTMENT)
        with pytest.raises(ValueError):
            resolver.resolve(ActorRole.PATIENT, "x_ray")

    def test_string_values_of_known_members_are_accepted(self, resolver):
        assert resolver.resolve("patient", "appointment") is not None

    def test_module_resolver_is_static(self):
        assert isinstance(permission_resolver, StaticPermissionResolver)


class TestScopeOverride:

    def test_default_scope_without_override(self, resolver):
        assert resolver.effective_scope(ActorRole.STAFF, ItemType.CLINIC_APPOINTMENT) == Scope.CLINIC

    def test_staff_may_narrow_clinic_to_self(self, resolver):
        scope = resolver.effective_scope(ActorRole.STAFF, ItemType.CLINIC_APPOINTMENT, Scope.SELF)
        assert scope == Scope.SELF

    def test_staff_may_not_widen_to_system(self, resolver):
        with pytest.raises(PermissionDeniedError, match="not allowed"):
            resolver.effective_scope(ActorRole.STAFF, ItemType.CLINIC_APPOINTMENT, Scope.SYSTEM)

    def test_patient_cannot_override_to_clinic(self, resolver):
        with pytest.raises(PermissionDeniedError):
            resolver.effective_scope(ActorRole.PATIENT, ItemType.APPOINTMENT, Scope.CLINIC)

    def test_admin_may_narrow_to_clinic(self, resolver):
        assert resolver.effective_scope(ActorRole.ADMIN, ItemType.USER_ACCOUNT, Scope.CLINIC) == Scope.CLINIC


class TestCheck:

    def test_check_returns_scope(self, resolver):
        assert resolver.check(ActorRole.PATIENT, ItemType.FEEDBACK, Action.ARCHIVE) == Scope.SELF

    def test_check_denies_disallowed_action(self, resolver):
        with pytest.raises(PermissionDeniedError, match="hide"):
            resolver.check(ActorRole.STAFF, ItemType.CLINIC_APPOINTMENT, Action.HIDE)

    def test_check_denies_missing_grant(self, resolver):
        with pytest.raises(PermissionDeniedError, match="no access"):
            resolver.check(ActorRole.PATIENT, ItemType.PARTNERSHIP_REQUEST, Action.ARCHIVE)


class TestDescribe:

    def test_patient_description(self, resolver):
        described = resolver.describe(ActorRole.PATIENT)
        assert described["role"] == "patient"
        assert described["allowed_item_types"] == ["appointment", "feedback", "notification"]
        assert described["grants"]["appointment"]["scope"] == "self"
        assert described["capabilities"]["can_override_scope"] is False

    def test_staff_description_lists_clinic_types(self, resolver):
        described = resolver.describe(ActorRole.STAFF)
        assert "clinic_appointment" in described["allowed_item_types"]
        assert described["grants"]["clinic_appointment"]["scope_overrides"] == ["self"]
        assert described["capabilities"]["can_override_scope"] is True
