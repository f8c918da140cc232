from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .exceptions import AccountInUse
from .models import (Account, Bill, FixedAsset, Invoice, JournalLine,
                     Payment)

"""Block invoice deletion if any payments or credit memos are applied."""


@receiver(pre_delete, sender=Invoice)
def prevent_delete_invoice_with_settlements(sender, instance, **kwargs):
    if Payment.objects.filter(invoice=instance).exists():
        raise ValidationError("Cannot delete invoice with applied payments.")
    if instance.credit_memos.exists():
        raise ValidationError("Cannot delete invoice with credit memos.")


"""Block bill deletion if any payments are applied."""


@receiver(pre_delete, sender=Bill)
def prevent_delete_bill_with_payments(sender, instance, **kwargs):
    if Payment.objects.filter(bill=instance).exists():
        raise ValidationError("Cannot delete bill with applied payments.")


"""Block deletion if account has ever been used in a journal line."""


@receiver(pre_delete, sender=Account)
def prevent_delete_account_with_journal_lines(sender, instance, **kwargs):
    if instance.is_system:
        raise AccountInUse(f"Account {instance.code} is a system account.")
    if JournalLine.objects.filter(account=instance).exists():
        raise AccountInUse(
            f"Account {instance.code} is used in journal lines.")


"""Block deletion of an asset whose purchase is on the books."""


@receiver(pre_delete, sender=FixedAsset)
def prevent_delete_capitalized_asset(sender, instance, **kwargs):
    if instance.purchase_journal_id:
        raise ValidationError(
            "Cannot delete a capitalized asset; dispose of it instead.")
