from django.db import models


# ---------- Currency ----------
class Currency(models.Model):  # Store a list of valid currencies
    """
    ISO currencies. Use currency.code FK in other tables instead of free-text.
    """
    code = models.CharField(max_length=3, primary_key=True)  # 'KES', 'USD'
    name = models.CharField(max_length=64)  # 'Kenyan Shilling'
    symbol = models.CharField(max_length=8, blank=True, null=True)  # 'KSh'
    # Minor-unit precision every amount is quantized to
    decimal_places = models.PositiveSmallIntegerField(default=2)

    def __str__(self):
        return f"{self.code} ({self.symbol or ''})"

    class Meta:
        verbose_name_plural = "currencies"


# ---------- Tenant / Company ----------
class Company(models.Model):

    """Tenant / Organization"""
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two companies can have the same slug
    )

    # Single reporting currency per tenant
    default_currency = models.ForeignKey(
        Currency,
        # don’t allow deleting a currency that a company depends on
        on_delete=models.PROTECT,
        related_name="companies",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name

    @property
    def currency_code(self):
        return self.default_currency_id

    @property
    def decimal_places(self):
        return self.default_currency.decimal_places
