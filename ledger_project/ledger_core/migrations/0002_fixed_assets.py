import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("ledger_core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        # Credit memo lines keep the amount actually credited
        migrations.AlterField(
            model_name="creditmemoline",
            name="line_total",
            field=models.DecimalField(decimal_places=2, max_digits=18),
        ),
        migrations.AddConstraint(
            model_name="creditmemoline",
            constraint=models.CheckConstraint(
                condition=models.Q(("line_total__gte", 0)),
                name="cm_line_total_non_negative"),
        ),
        # Fixed asset posting roles
        migrations.AddField(
            model_name="postingconfiguration",
            name="depreciation_expense",
            field=models.ForeignKey(
                blank=True, null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="posting_role_depreciation_expense",
                to="ledger_core.account"),
        ),
        migrations.AddField(
            model_name="postingconfiguration",
            name="accumulated_depreciation",
            field=models.ForeignKey(
                blank=True, null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="posting_role_accumulated_depreciation",
                to="ledger_core.account"),
        ),
        migrations.AddField(
            model_name="postingconfiguration",
            name="gain_on_disposal",
            field=models.ForeignKey(
                blank=True, null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="posting_role_gain_on_disposal",
                to="ledger_core.account"),
        ),
        migrations.AddField(
            model_name="postingconfiguration",
            name="loss_on_disposal",
            field=models.ForeignKey(
                blank=True, null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="posting_role_loss_on_disposal",
                to="ledger_core.account"),
        ),
        migrations.CreateModel(
            name="FixedAsset",
            fields=[
                ("id", models.BigAutoField(
                    auto_created=True, primary_key=True,
                    serialize=False, verbose_name="ID")),
                ("asset_code", models.CharField(
                    blank=True, max_length=80, null=True)),
                ("description", models.CharField(max_length=400)),
                ("purchase_date", models.DateField()),
                ("purchase_cost", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("salvage_value", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("status", models.CharField(
                    choices=[("capitalized", "Capitalized"),
                             ("disposed", "Disposed")],
                    default="capitalized", max_length=20)),
                ("useful_life_years", models.PositiveIntegerField(
                    blank=True, null=True)),
                ("depreciation_method", models.CharField(
                    choices=[("straight_line", "Straight line"),
                             ("none", "Not depreciated")],
                    default="straight_line", max_length=30)),
                ("accumulated_depreciation", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("disposal_date", models.DateField(blank=True, null=True)),
                ("disposal_price", models.DecimalField(
                    decimal_places=2, default=Decimal("0.00"),
                    max_digits=18)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    to="ledger_core.company")),
                ("asset_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="fixed_assets", to="ledger_core.account")),
                ("accumulated_depreciation_account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="depreciated_assets",
                    to="ledger_core.account")),
                ("vendor", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="fixed_assets", to="ledger_core.vendor")),
                ("purchase_journal", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="purchased_asset",
                    to="ledger_core.journalentry")),
                ("disposal_account", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="asset_disposals",
                    to="ledger_core.account")),
                ("disposal_journal", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="disposed_asset",
                    to="ledger_core.journalentry")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "asset_code"],
                                 name="fa_company_code_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("company", "asset_code"),
                        name="uq_fa_company_asset_code"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("purchase_cost__gte", 0),
                            ("salvage_value__gte", 0),
                            ("accumulated_depreciation__gte", 0),
                            ("accumulated_depreciation__lte",
                             models.F("purchase_cost"))),
                        name="fa_valid_amounts"),
                ],
            },
        ),
    ]
