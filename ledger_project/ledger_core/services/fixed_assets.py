import logging
from django.core.exceptions import ValidationError
from django.utils import timezone
from ..models import FixedAsset, PostingConfiguration
from ..money import money
from .orchestrator import OperationResult, check_company, ledger_operation
from .posting import credit, debit, post_lines

logger = logging.getLogger(__name__)


def _accumulated_account(asset, config):
    return (asset.accumulated_depreciation_account
            or config.account_for("accumulated_depreciation"))


# ----------------------------
# Fixed Asset workflows
# ----------------------------
@ledger_operation("create_fixed_asset")
def create_fixed_asset(company, *, description, purchase_cost, asset_account,
                       purchase_date=None, paid_from=None,
                       finance_account=None, finance_portion=0,
                       asset_code=None, vendor=None, useful_life_years=None,
                       salvage_value=0, depreciation_method="straight_line",
                       accumulated_depreciation_account=None,
                       idempotency_key=None, user=None):
    """
    Capitalize an asset at cost.

    DR asset_account = purchase_cost
    CR paid_from (payment eligible) = purchase_cost - finance_portion
    CR finance_account (a liability, e.g. a loan) = finance_portion
    """
    check_company(company, asset_account, paid_from, finance_account,
                  vendor, accumulated_depreciation_account)
    cost = money(purchase_cost)
    if cost <= 0:
        raise ValidationError("Purchase cost must be > 0")
    financed = money(finance_portion)
    if financed < 0 or financed > cost:
        raise ValidationError("Financed portion must be between 0 and cost")
    paid = cost - financed
    if paid and paid_from is None:
        raise ValidationError(f"Pay {paid} from a payment account")
    if paid_from is not None and not paid_from.is_payment_eligible:
        raise ValidationError(f"Account {paid_from.code} cannot pay")
    if financed and finance_account is None:
        raise ValidationError("Financed portion needs a finance account")
    if finance_account is not None and finance_account.ac_type != "liability":
        raise ValidationError(
            f"Account {finance_account.code} is not a liability")

    date = purchase_date or timezone.localdate()
    asset = FixedAsset(
        company=company,
        asset_code=asset_code,
        description=description,
        purchase_date=date,
        purchase_cost=cost,
        salvage_value=money(salvage_value),
        asset_account=asset_account,
        accumulated_depreciation_account=accumulated_depreciation_account,
        vendor=vendor,
        useful_life_years=useful_life_years,
        depreciation_method=depreciation_method,
        created_by=user,
    )
    asset.save()

    memo = f"Asset purchase: {description}"
    specs = [debit(asset_account, cost, memo)]
    if paid:
        specs.append(credit(paid_from, paid, f"Payment for {description}"))
    if financed:
        specs.append(
            credit(finance_account, financed, f"Loan for {description}"))
    je = post_lines(
        company, date, specs,
        memo=memo,
        source=("fixed_asset", asset.pk),
        idempotency_key=idempotency_key,
        user=user,
    )
    asset.purchase_journal = je
    asset.save(update_fields=["purchase_journal"])
    logger.info("Capitalized asset %s at %s (company=%s)",
                asset.asset_code or asset.pk, cost, company.pk)
    return OperationResult("create_fixed_asset", document=asset,
                           journals=[je])


@ledger_operation("depreciate_asset")
def depreciate_asset(asset, amount=None, *, new_value=None, date=None,
                     idempotency_key=None, user=None):
    """
    Record depreciation for a fixed asset into the ledger.
    Workflow:
        1. Work out the charge: amount, or book value down to new_value,
           or one year of straight-line depreciation.
        2. Post DR Depreciation Expense / CR Accumulated Depreciation.
        3. Straight-line charges are capped so the book value never
           drops below salvage; explicit charges beyond it are rejected.
    """
    company = asset.company
    config = PostingConfiguration.for_company(company)
    # lock asset row
    asset = FixedAsset.objects.select_for_update().get(pk=asset.pk)
    if asset.status == "disposed":
        raise ValidationError(f"Asset {asset} is disposed")
    remaining = asset.depreciable_remaining
    if remaining <= 0:
        raise ValidationError("Asset already fully depreciated")

    if amount is not None and new_value is not None:
        raise ValidationError("Give either amount or new_value")
    if new_value is not None:
        amount = asset.book_value - money(new_value)
    if amount is None:
        if asset.depreciation_method != "straight_line":
            raise ValidationError(
                f"Asset {asset} needs an explicit depreciation amount")
        charge = min(asset.annual_depreciation, remaining)
    else:
        charge = money(amount)
        if charge > remaining:
            raise ValidationError(
                f"Depreciation {charge} exceeds the {remaining} left")
    if charge <= 0:
        raise ValidationError("Depreciation amount must be > 0")

    label = asset.asset_code or asset.description
    je = post_lines(
        company, date or timezone.localdate(),
        [debit(config.account_for("depreciation_expense"), charge,
               f"Depreciation expense for {label}"),
         credit(_accumulated_account(asset, config), charge,
                f"Accumulated depreciation for {label}")],
        memo=f"Depreciation for asset {label}",
        source=("fixed_asset", asset.pk),
        idempotency_key=idempotency_key,
        user=user,
    )
    asset.accumulated_depreciation = money(
        asset.accumulated_depreciation + charge)
    asset.save(update_fields=["accumulated_depreciation"])
    logger.info("Depreciated asset %s by %s, book value %s",
                label, charge, asset.book_value)
    return OperationResult("depreciate_asset", document=asset, journals=[je])


@ledger_operation("dispose_asset")
def dispose_asset(asset, *, proceeds=0, proceeds_account=None, date=None,
                  idempotency_key=None, user=None):
    """
    Sell or write off an asset.

    DR proceeds_account = proceeds, DR Accumulated Depreciation (cleared),
    CR asset account = cost; the difference between proceeds and book
    value is CR Gain on Disposal or DR Loss on Disposal.
    """
    company = asset.company
    config = PostingConfiguration.for_company(company)
    asset = FixedAsset.objects.select_for_update().get(pk=asset.pk)
    if asset.status == "disposed":
        raise ValidationError(f"Asset {asset} is already disposed")
    proceeds = money(proceeds)
    if proceeds < 0:
        raise ValidationError("Proceeds must be >= 0")
    if proceeds and proceeds_account is None:
        raise ValidationError("Sale proceeds need a receiving account")
    if proceeds_account is not None:
        check_company(company, proceeds_account)
        if not proceeds_account.is_payment_eligible:
            raise ValidationError(
                f"Account {proceeds_account.code} cannot receive payments")

    label = asset.asset_code or asset.description
    specs = []
    if proceeds:
        specs.append(
            debit(proceeds_account, proceeds, f"Sale proceeds: {label}"))
    if asset.accumulated_depreciation:
        specs.append(debit(
            _accumulated_account(asset, config),
            asset.accumulated_depreciation,
            f"Clear accumulated depreciation: {label}"))
    specs.append(credit(
        asset.asset_account, asset.purchase_cost,
        f"Remove asset cost: {label}"))
    # balancing figure
    gain = proceeds - asset.book_value
    if gain > 0:
        specs.append(credit(config.account_for("gain_on_disposal"), gain,
                            f"Gain on disposal: {label}"))
    elif gain < 0:
        specs.append(debit(config.account_for("loss_on_disposal"), -gain,
                           f"Loss on disposal: {label}"))

    date = date or timezone.localdate()
    kind = "sold" if proceeds else "written off"
    je = post_lines(
        company, date, specs,
        memo=f"Asset disposal: {label} ({kind})",
        source=("fixed_asset", asset.pk),
        idempotency_key=idempotency_key,
        user=user,
    )
    asset.status = "disposed"
    asset.disposal_date = date
    asset.disposal_price = proceeds
    asset.disposal_account = proceeds_account
    asset.disposal_journal = je
    asset.save(update_fields=["status", "disposal_date", "disposal_price",
                              "disposal_account", "disposal_journal"])
    logger.info("Disposed asset %s (%s), gain %s", label, kind, gain)
    return OperationResult("dispose_asset", document=asset, journals=[je])
