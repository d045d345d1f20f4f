from django.core.management.base import BaseCommand

from apps.messaging.constants import INITIAL_TEMPLATES, SYSTEM_TEMPLATES
from apps.messaging.models import AppGroup, MessageTemplate, RiskProfile, Tactic


class Command(BaseCommand):
    help = "Create the built-in message templates and the system notification templates"

    def handle(self, *args, **options):
        for template in INITIAL_TEMPLATES:
            self._ensure(template["name"], {k: v for k, v in template.items() if k != "name"})

        for template in SYSTEM_TEMPLATES:
            self._ensure(
                template["name"],
                {
                    "content": template["content"],
                    "category": template["category"],
                    "variable_examples": template["examples"],
                    "app_group": AppGroup.SYSTEM_NOTIFICATIONS,
                    "tactic": Tactic.AUTHORITY,
                    "target_profile": RiskProfile.REGULAR,
                },
            )

    def _ensure(self, name, defaults):
        template, created = MessageTemplate.objects.get_or_create(name=name, defaults=defaults)
        action = "created" if created else "exists"
        self.stdout.write(self.style.SUCCESS(f"{template.name}: {action}"))
