"""
Users — Model Tests

Tests for the phone-authenticated staff User, its manager and the
creation audit signal.

@file users/tests/test_models.py
"""

import pytest

from core.models import AuditLog
from tests.factories import BranchFactory, UserFactory
from users.models import User


@pytest.mark.django_db
class TestUserModel:
    def test_create_user_defaults_to_cashier(self):
        user = User.objects.create_user(phone='+919811111111', password='Test2026!!')
        assert user.role == User.RoleChoices.CASHIER
        assert user.is_staff is False
        assert user.check_password('Test2026!!')

    def test_phone_required(self):
        with pytest.raises(ValueError):
            User.objects.create_user(phone='', password='Test2026!!')

    def test_superuser_creation(self):
        user = User.objects.create_superuser(phone='+919822222222', password='Super2026!!')
        assert user.is_staff is True
        assert user.is_superuser is True
        assert user.role == User.RoleChoices.ADMIN

    def test_superuser_requires_staff(self):
        with pytest.raises(ValueError):
            User.objects.create_superuser(phone='+919833333333', password='x', is_staff=False)

    def test_names(self):
        user = UserFactory(full_name='Asha Verma')
        assert user.get_full_name() == 'Asha Verma'
        assert user.get_short_name() == 'Asha'
        assert str(user) == 'Asha Verma'

    def test_names_fall_back_to_phone(self):
        user = UserFactory(full_name='')
        assert user.get_full_name() == user.phone
        assert user.get_short_name() == user.phone

    def test_home_branch(self):
        branch = BranchFactory()
        user = UserFactory(branch=branch)
        assert branch.staff.get() == user

    def test_active_manager_filter(self):
        active = UserFactory()
        UserFactory(is_active=False)
        assert list(User.objects.active()) == [active]

    def test_creation_is_audited(self):
        user = UserFactory()
        entry = AuditLog.objects.for_object('User', user.pk).get()
        assert entry.action == AuditLog.ActionChoices.CREATE
        assert entry.new_values['phone'] == user.phone

    def test_phone_is_normalized(self):
        user = User.objects.create_user(phone='+91 98-4444 4444', password='Test2026!!')
        assert user.phone == '+919844444444'

    def test_on_duty_filters_home_branch(self):
        branch = BranchFactory()
        here = UserFactory(branch=branch)
        UserFactory(branch=BranchFactory())
        UserFactory(branch=branch, is_active=False)
        assert list(User.objects.on_duty(branch.pk)) == [here]
