# tests/test_permissions.py

import pytest
from django.core.exceptions import PermissionDenied

from accounts.authz import actor_for, require
from accounts.commands import add_member
from accounts.models import CompanyMembership, CompanyMembershipPermission
from accounts.permission_defaults import ROLE_DEFAULTS
from accounts.permissions import grant_role_defaults
from accounting.results import ErrorCode


@pytest.mark.django_db
class TestRoleDefaults:

    def test_owner_is_implicitly_allowed(self, actor):
        assert actor.is_owner
        assert actor.has("periods.close")

    def test_viewer_is_read_only(self, viewer_actor):
        assert viewer_actor.has("reports.view")
        assert not viewer_actor.has("journal.post")
        assert not viewer_actor.has("periods.close")

    def test_user_cannot_close_periods(self, actor, other_user):
        add_member(actor, other_user, role=CompanyMembership.Role.USER)
        member = actor_for(other_user, actor.company)

        assert member.has("journal.create")
        with pytest.raises(PermissionDenied):
            require(member, "periods.close")

    def test_grant_is_idempotent(self, viewer_actor):
        granted = grant_role_defaults(viewer_actor.membership)

        assert granted == 0
        assert viewer_actor.membership.permissions.count() == len(ROLE_DEFAULTS["VIEWER"])

    def test_revocation_blocks(self, actor, other_user):
        add_member(actor, other_user, role=CompanyMembership.Role.ADMIN)
        assert actor_for(other_user, actor.company).has("journal.post")

        CompanyMembershipPermission.objects.filter(
            membership__user=other_user,
            permission__code="journal.post",
        ).delete()

        assert not actor_for(other_user, actor.company).has("journal.post")

    def test_inactive_membership_denied(self, actor, viewer_user, viewer_actor):
        CompanyMembership.objects.filter(user=viewer_user).update(is_active=False)

        with pytest.raises(PermissionDenied):
            actor_for(viewer_user, actor.company)


@pytest.mark.django_db
class TestAddMember:

    def test_duplicate_member_rejected(self, actor, viewer_actor, viewer_user):
        result = add_member(actor, viewer_user, role=CompanyMembership.Role.VIEWER)

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR

    def test_unknown_role_rejected(self, actor, other_user):
        result = add_member(actor, other_user, role="AUDITOR")

        assert not result.success
        assert result.code == ErrorCode.VALIDATION_ERROR

    def test_viewer_cannot_add_members(self, viewer_actor, other_user):
        with pytest.raises(PermissionDenied):
            add_member(viewer_actor, other_user)

    def test_non_member_has_no_actor(self, company, other_user):
        with pytest.raises(PermissionDenied):
            actor_for(other_user, company)
