from django.core.management.base import BaseCommand

from apps.pricing.models import DEFAULT_PLAN_TEMPLATES, PaymentPlanTemplate, StoreSettings


class Command(BaseCommand):
    help = "Create the default installment plan templates and store settings row"

    def handle(self, *args, **options):
        StoreSettings.load()
        for template in DEFAULT_PLAN_TEMPLATES:
            plan, created = PaymentPlanTemplate.objects.get_or_create(
                name=template["name"],
                defaults={k: v for k, v in template.items() if k != "name"},
            )
            action = "created" if created else "exists"
            self.stdout.write(self.style.SUCCESS(f"{plan.name}: {action}"))
