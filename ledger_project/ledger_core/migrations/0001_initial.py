import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Currency",
            fields=[
                ("code", models.CharField(
                    max_length=3, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=64)),
                ("symbol", models.CharField(
                    blank=True, max_length=8, null=True)),
                ("decimal_places", models.PositiveSmallIntegerField(
                    default=2)),
            ],
            options={"verbose_name_plural": "currencies"},
        ),
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("default_currency", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="companies",
                    to="ledger_core.currency")),
            ],
            options={"verbose_name_plural": "companies"},
        ),
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32)),
                ("name", models.CharField(max_length=200)),
                ("ac_type", models.CharField(
                    choices=[("asset", "Asset"), ("liability", "Liability"),
                             ("equity", "Equity"), ("income", "Income"),
                             ("expense", "Expense")],
                    max_length=10)),
                ("subtype", models.CharField(
                    blank=True, default="", max_length=64)),
                ("classification", models.CharField(
                    blank=True,
                    choices=[("current", "Current"),
                             ("non_current", "Non-current")],
                    default="", max_length=12)),
                ("is_system", models.BooleanField(default=False)),
                ("is_contra", models.BooleanField(default=False)),
                ("is_payment_eligible", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("parent", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="children", to="ledger_core.account")),
            ],
            options={
                "ordering": ("company", "code"),
                "indexes": [
                    models.Index(fields=["company", "ac_type"],
                                 name="acct_company_type_idx"),
                    models.Index(fields=["company", "parent"],
                                 name="acct_company_parent_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "code"),
                        name="uq_company_account_code"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PostingConfiguration",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("company", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="posting_configuration",
                    to="ledger_core.company")),
                ("accounts_receivable", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_accounts_receivable",
                    to="ledger_core.account")),
                ("accounts_payable", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_accounts_payable",
                    to="ledger_core.account")),
                ("sales_revenue", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_sales_revenue",
                    to="ledger_core.account")),
                ("sales_returns", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_sales_returns",
                    to="ledger_core.account")),
                ("sales_tax", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_sales_tax",
                    to="ledger_core.account")),
                ("sales_discounts", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_sales_discounts",
                    to="ledger_core.account")),
                ("inventory_asset", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_inventory_asset",
                    to="ledger_core.account")),
                ("cost_of_goods_sold", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_cost_of_goods_sold",
                    to="ledger_core.account")),
                ("inventory_shrinkage", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_inventory_shrinkage",
                    to="ledger_core.account")),
                ("inventory_gain", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_inventory_gain",
                    to="ledger_core.account")),
                ("count_adjustment", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_count_adjustment",
                    to="ledger_core.account")),
                ("opening_balance_equity", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_opening_balance_equity",
                    to="ledger_core.account")),
                ("default_payment_account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="posting_role_default_payment_account",
                    to="ledger_core.account")),
            ],
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("contact_email", models.EmailField(
                    blank=True, max_length=254, null=True)),
                ("payment_terms_days", models.IntegerField(default=30)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "name"],
                                 name="cust_company_name_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "name"),
                        name="uq_company_customer_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Vendor",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("contact_email", models.EmailField(
                    blank=True, max_length=254, null=True)),
                ("payment_terms_days", models.IntegerField(default=30)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "name"],
                                 name="vendor_company_name_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "name"),
                        name="uq_company_vendor_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("journal_number", models.CharField(max_length=64)),
                ("date", models.DateField()),
                ("memo", models.TextField(blank=True, default="")),
                ("status", models.CharField(
                    choices=[("draft", "Draft"), ("posted", "Posted"),
                             ("void", "Void")],
                    default="draft", max_length=10)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("source_type", models.CharField(
                    blank=True, default="", max_length=50)),
                ("source_id", models.BigIntegerField(blank=True, null=True)),
                ("idempotency_key", models.CharField(
                    blank=True, db_index=True, max_length=100, null=True)),
                ("posting_fingerprint", models.CharField(
                    blank=True, max_length=64, null=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
                ("reversal_of", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="reversed_by",
                    to="ledger_core.journalentry")),
            ],
            options={
                "ordering": ("date", "id"),
                "indexes": [
                    models.Index(fields=["company", "date"],
                                 name="je_company_date_idx"),
                    models.Index(fields=["company", "status"],
                                 name="je_company_status_idx"),
                    models.Index(
                        fields=["company", "source_type", "source_id"],
                        name="je_company_source_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "journal_number"),
                        name="uq_je_company_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField(default=0)),
                ("memo", models.CharField(
                    blank=True, default="", max_length=400)),
                ("debit", models.DecimalField(
                    decimal_places=2, default=0, max_digits=18)),
                ("credit", models.DecimalField(
                    decimal_places=2, default=0, max_digits=18)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("journal", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="lines", to="ledger_core.journalentry")),
                ("account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="journal_lines", to="ledger_core.account")),
            ],
            options={
                "ordering": ("journal", "line_no", "id"),
                "indexes": [
                    models.Index(fields=["company", "account"],
                                 name="jl_company_account_idx"),
                    models.Index(fields=["company", "journal"],
                                 name="jl_company_journal_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("debit__gte", 0), ("credit__gte", 0)),
                        name="jl_non_negative_amounts"),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("debit", 0), ("credit", 0)),
                            _negated=True),
                        name="jl_debit_or_credit_nonzero"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("debit", 0), ("credit", 0), _connector="OR"),
                        name="jl_not_both_debit_and_credit"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryItem",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("sku", models.CharField(max_length=80)),
                ("name", models.CharField(max_length=200)),
                ("unit", models.CharField(default="each", max_length=20)),
                ("item_type", models.CharField(
                    choices=[("goods", "Goods"), ("service", "Service")],
                    default="goods", max_length=10)),
                ("quantity_on_hand", models.DecimalField(
                    decimal_places=4, default=Decimal("0"), max_digits=18)),
                ("weighted_average_cost", models.DecimalField(
                    decimal_places=6, default=Decimal("0"), max_digits=20)),
                ("cost_price", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("selling_price", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("reorder_level", models.DecimalField(
                    decimal_places=4, default=Decimal("0"), max_digits=18)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("asset_account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="items_asset_account",
                    to="ledger_core.account")),
                ("income_account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="items_income_account",
                    to="ledger_core.account")),
                ("cogs_account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="items_cogs_account",
                    to="ledger_core.account")),
            ],
            options={
                "ordering": ("company", "sku"),
                "indexes": [
                    models.Index(fields=["company", "name"],
                                 name="item_company_name_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "sku"),
                        name="uq_company_item_sku"),
                    models.CheckConstraint(
                        condition=models.Q(("weighted_average_cost__gte", 0)),
                        name="item_wac_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("direction", models.CharField(
                    choices=[("IN", "In"), ("OUT", "Out")], max_length=3)),
                ("reason", models.CharField(
                    choices=[
                        ("PURCHASE", "Purchase"),
                        ("SALE", "Sale"),
                        ("CUSTOMER_RETURN", "Customer return"),
                        ("SUPPLIER_RETURN", "Supplier return"),
                        ("DAMAGED", "Damaged"),
                        ("THEFT", "Theft"),
                        ("EXPIRED", "Expired"),
                        ("LOST", "Lost"),
                        ("FOUND", "Found"),
                        ("COUNT_ADJUSTMENT", "Physical count adjustment"),
                        ("TRANSFER_IN", "Transfer in"),
                        ("TRANSFER_OUT", "Transfer out"),
                        ("SAMPLE", "Sample"),
                        ("OPENING_STOCK", "Opening stock"),
                    ],
                    max_length=20)),
                ("quantity", models.DecimalField(
                    decimal_places=4, max_digits=18)),
                ("unit_cost", models.DecimalField(
                    decimal_places=6, max_digits=20)),
                ("total_cost", models.DecimalField(
                    decimal_places=2, max_digits=18)),
                ("quantity_before", models.DecimalField(
                    decimal_places=4, max_digits=18)),
                ("quantity_after", models.DecimalField(
                    decimal_places=4, max_digits=18)),
                ("wac_before", models.DecimalField(
                    decimal_places=6, max_digits=20)),
                ("wac_after", models.DecimalField(
                    decimal_places=6, max_digits=20)),
                ("negative_override", models.BooleanField(default=False)),
                ("reference", models.CharField(
                    blank=True, default="", max_length=100)),
                ("source_type", models.CharField(
                    blank=True, default="", max_length=50)),
                ("source_id", models.BigIntegerField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("item", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="movements",
                    to="ledger_core.inventoryitem")),
                ("journal", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="stock_movements",
                    to="ledger_core.journalentry")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ("created_at", "id"),
                "indexes": [
                    models.Index(fields=["company", "item", "created_at"],
                                 name="sm_company_item_created_idx"),
                    models.Index(
                        fields=["company", "source_type", "source_id"],
                        name="sm_company_source_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gt", 0)),
                        name="sm_quantity_positive"),
                    models.CheckConstraint(
                        condition=models.Q(("unit_cost__gte", 0)),
                        name="sm_unit_cost_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("invoice_number", models.CharField(max_length=64)),
                ("date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("status", models.CharField(
                    choices=[("unpaid", "Unpaid"),
                             ("partial", "Partially paid"),
                             ("paid", "Paid")],
                    default="unpaid", max_length=10)),
                ("subtotal", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("tax", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("discount", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("total", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("amount_paid", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("amount_credited", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("customer", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="invoices", to="ledger_core.customer")),
                ("payment_account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="cash_invoices", to="ledger_core.account")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "customer"],
                                 name="inv_company_customer_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "invoice_number"),
                        name="uq_invoice_company_number"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("amount_paid__gte", 0),
                            ("amount_credited__gte", 0)),
                        name="inv_non_negative_settlements"),
                ],
            },
        ),
        migrations.CreateModel(
            name="InvoiceLine",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField(default=0)),
                ("description", models.CharField(
                    blank=True, default="", max_length=400)),
                ("quantity", models.DecimalField(
                    decimal_places=4, max_digits=18)),
                ("unit_price", models.DecimalField(
                    decimal_places=4, max_digits=18)),
                ("line_total", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("unit_cost", models.DecimalField(
                    decimal_places=6, default=Decimal("0"), max_digits=20)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("invoice", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="lines", to="ledger_core.invoice")),
                ("item", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="invoice_lines",
                    to="ledger_core.inventoryitem")),
                ("account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="invoice_lines", to="ledger_core.account")),
                ("stock_movement", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="invoice_line",
                    to="ledger_core.stockmovement")),
            ],
            options={
                "ordering": ("invoice", "line_no", "id"),
                "indexes": [
                    models.Index(fields=["company", "invoice"],
                                 name="il_company_invoice_idx"),
                    models.Index(fields=["company", "item"],
                                 name="il_company_item_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("quantity__gt", 0), ("unit_price__gte", 0)),
                        name="inv_line_valid_amounts"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Bill",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("bill_number", models.CharField(max_length=64)),
                ("date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("status", models.CharField(
                    choices=[("unpaid", "Unpaid"),
                             ("partial", "Partially paid"),
                             ("paid", "Paid")],
                    default="unpaid", max_length=10)),
                ("total", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("amount_paid", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("amount_returned", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("vendor", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="bills", to="ledger_core.vendor")),
                ("payment_account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="cash_bills", to="ledger_core.account")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "vendor"],
                                 name="bill_company_vendor_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "bill_number"),
                        name="uq_bill_company_number"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("amount_paid__gte", 0),
                            ("amount_returned__gte", 0)),
                        name="bill_non_negative_settlements"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BillLine",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("line_no", models.PositiveIntegerField(default=0)),
                ("description", models.CharField(
                    blank=True, default="", max_length=400)),
                ("quantity", models.DecimalField(
                    decimal_places=4, max_digits=18)),
                ("unit_cost", models.DecimalField(
                    decimal_places=6, max_digits=20)),
                ("line_total", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("bill", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="lines", to="ledger_core.bill")),
                ("item", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="bill_lines",
                    to="ledger_core.inventoryitem")),
                ("account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="bill_lines", to="ledger_core.account")),
                ("stock_movement", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="bill_line",
                    to="ledger_core.stockmovement")),
            ],
            options={
                "ordering": ("bill", "line_no", "id"),
                "indexes": [
                    models.Index(fields=["company", "bill"],
                                 name="bl_company_bill_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("quantity__gt", 0), ("unit_cost__gte", 0)),
                        name="bill_line_valid_amounts"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CreditMemo",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("memo_number", models.CharField(max_length=64)),
                ("date", models.DateField()),
                ("subtotal", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("tax", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("discount", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("total", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("cost_total", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("invoice", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="credit_memos", to="ledger_core.invoice")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "invoice"],
                                 name="cm_company_invoice_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "memo_number"),
                        name="uq_credit_memo_company_number"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CreditMemoLine",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("quantity", models.DecimalField(
                    decimal_places=4, max_digits=18)),
                ("unit_price", models.DecimalField(
                    decimal_places=4, max_digits=18)),
                ("line_total", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("unit_cost", models.DecimalField(
                    decimal_places=6, default=Decimal("0"), max_digits=20)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("credit_memo", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="lines", to="ledger_core.creditmemo")),
                ("invoice_line", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="returns", to="ledger_core.invoiceline")),
                ("stock_movement", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="credit_memo_line",
                    to="ledger_core.stockmovement")),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity__gt", 0)),
                        name="cm_line_quantity_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("kind", models.CharField(
                    choices=[("received", "Received"), ("made", "Made")],
                    max_length=10)),
                ("amount", models.DecimalField(
                    decimal_places=2, max_digits=18)),
                ("date", models.DateField()),
                ("reference", models.CharField(
                    blank=True, default="", max_length=100)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("invoice", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="payments", to="ledger_core.invoice")),
                ("bill", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="payments", to="ledger_core.bill")),
                ("account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="payments", to="ledger_core.account")),
                ("journal", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="payment", to="ledger_core.journalentry")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "date"],
                                 name="pay_company_date_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="payment_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to="ledger_core.company")),
                ("user", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "user"],
                                 name="audit_company_user_idx"),
                    models.Index(fields=["company", "created_at"],
                                 name="audit_company_created_idx"),
                ],
            },
        ),
    ]
