from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Advance, Expense, FundsReceived, Invoice, Site
from .repository import site_ledgers


@receiver(post_save, sender=Site)
@receiver(post_delete, sender=Site)
def drop_site_ledger(sender, instance: Site, **kwargs):
    site_ledgers.invalidate(instance.pk)


@receiver(post_save, sender=Expense)
@receiver(post_delete, sender=Expense)
@receiver(post_save, sender=Advance)
@receiver(post_delete, sender=Advance)
@receiver(post_save, sender=FundsReceived)
@receiver(post_delete, sender=FundsReceived)
@receiver(post_save, sender=Invoice)
@receiver(post_delete, sender=Invoice)
def drop_ledger_for_record(sender, instance, **kwargs):
    """Any booking against a site makes its cached ledger stale."""
    site_ledgers.invalidate(instance.site_id)
