from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand

from apps.accounts.models import User, UserRole


class Command(BaseCommand):
    help = "Create the store role groups and add every user to the group of their role"

    def add_arguments(self, parser):
        parser.add_argument("--skip-users", action="store_true", help="Only create the groups")

    def handle(self, *args, **options):
        groups = {}
        for role in UserRole.values:
            groups[role], created = Group.objects.get_or_create(name=role)
            self.stdout.write(self.style.SUCCESS(f"{role}: {'created' if created else 'exists'}"))

        if options["skip_users"]:
            return

        synced = 0
        for user in User.objects.exclude(groups__name__in=UserRole.values):
            group = groups.get(user.role)
            if group is not None:
                user.groups.add(group)
                synced += 1
        self.stdout.write(f"Users added to role groups: {synced}")
