# ledger/signals.py

import logging

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import ExpenseEntry, IncomeEntry, Member, ShareTransaction
from .utils.cache_helpers import bump_ledger_version

logger = logging.getLogger(__name__)


@receiver(post_save, sender=IncomeEntry)
@receiver(post_delete, sender=IncomeEntry)
@receiver(post_save, sender=ExpenseEntry)
@receiver(post_delete, sender=ExpenseEntry)
@receiver(post_save, sender=ShareTransaction)
@receiver(post_delete, sender=ShareTransaction)
@receiver(post_save, sender=Member)
@receiver(post_delete, sender=Member)
def invalidate_share_price_cache(sender, instance, **kwargs):
    """Any ledger change can move every later month of the valuation chain."""
    logger.debug("%s %s changed, invalidating share price cache", sender.__name__, instance.pk)
    bump_ledger_version()
