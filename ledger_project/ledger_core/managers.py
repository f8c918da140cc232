from django.db import models

# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):
        return self.filter(company=company)

    def active(self, company):
        return self.filter(
                            company=company,  # enforce tenant scoping
                            is_active=True    # only fetch active records
                        )
    # Enables query:
    # InventoryItem.objects.active(company)


# Attach TenantQuerySet to .objects
class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    pass


# Journals carry lifecycle filters on top of tenant scoping
class JournalQuerySet(TenantQuerySet):
    def posted(self):
        return self.filter(status="posted")

    def in_ledger(self):
        """Journals whose lines count towards balances.

        A void journal stays in the ledger next to the reversing
        journal that cancels it, so the pair nets to zero.
        """
        return self.filter(status__in=("posted", "void"))


class JournalManager(models.Manager.from_queryset(JournalQuerySet)):
    pass
