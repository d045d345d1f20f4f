from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from apps.customers.directory import bump_version
from apps.customers.models import Customer
from apps.orders.models import Order, PaymentRecord


@receiver(post_save, sender=Order)
@receiver(post_delete, sender=Order)
@receiver(post_save, sender=PaymentRecord)
@receiver(post_delete, sender=PaymentRecord)
@receiver(post_save, sender=Customer)
@receiver(post_delete, sender=Customer)
def invalidate_directory(sender, **kwargs):
    # Readers must not rebuild from rows the writer has not committed yet.
    transaction.on_commit(bump_version)
