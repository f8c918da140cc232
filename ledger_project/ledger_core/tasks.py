import logging
from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def verify_ledger_integrity(company_id, as_of=None):
    """
    Recompute the trial balance and the ledger-wide zero sum for one
    company. Returns the findings; logs a warning when out of balance.
    """
    # import lazily to avoid circular imports at module import time
    from .models import Company
    from .services.balances import global_net
    from .services.reports import trial_balance

    company = Company.objects.select_related("default_currency").get(
        pk=company_id)
    report = trial_balance(company, as_of=as_of)
    net = global_net(company, as_of=as_of)
    findings = {
        "company_id": company_id,
        "as_of": as_of,
        "total_debit": str(report["totals"]["debit"]),
        "total_credit": str(report["totals"]["credit"]),
        "global_net": str(net),
        "is_balanced": report["meta"]["is_balanced"] and net == 0,
    }
    if findings["is_balanced"]:
        logger.info("Ledger for company %s is balanced", company_id)
    else:
        logger.warning("Ledger integrity check failed for company %s: %s",
                       company_id, findings)
    return findings
