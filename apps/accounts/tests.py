from io import StringIO

from django.contrib.auth.models import Group
from django.core.management import call_command
from rest_framework.test import APITestCase

from apps.accounts.models import User, UserRole
from apps.common.permissions import resolve_role


class SeedRolesTests(APITestCase):
    def test_groups_are_created_and_users_synced(self):
        manager = User.objects.create_user(username="manager_roles", password="manager123", role=UserRole.MANAGER)
        out = StringIO()
        call_command("seed_roles", stdout=out)

        self.assertEqual(set(Group.objects.values_list("name", flat=True)), set(UserRole.values))
        self.assertTrue(manager.groups.filter(name=UserRole.MANAGER).exists())
        self.assertIn("Users added to role groups: 1", out.getvalue())

        again = StringIO()
        call_command("seed_roles", stdout=again)
        self.assertIn("Users added to role groups: 0", again.getvalue())

    def test_group_membership_wins_over_role_field(self):
        user = User.objects.create_user(username="promoted", password="staff123", role=UserRole.STAFF)
        call_command("seed_roles", "--skip-users", stdout=StringIO())
        self.assertEqual(resolve_role(user), UserRole.STAFF)

        user.groups.add(Group.objects.get(name=UserRole.ADMIN))
        self.assertEqual(resolve_role(user), UserRole.ADMIN)
