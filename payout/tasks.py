"""
Celery tasks for the monthly vendor payout cycle.

Both tasks build a fresh job context per run, so a beat schedule or a manual
trigger with an explicit ``run_at`` behave the same way.
"""
import logging
from datetime import datetime
from typing import Optional, Union

from celery import shared_task
from django.utils.dateparse import parse_datetime

from .services.provider import PayoutProvider
from .services.reconciler import PayoutJobContext, PayoutReconciler

logger = logging.getLogger(__name__)


def _parse_run_at(run_at: Union[str, datetime, None]) -> Optional[datetime]:
    if run_at is None or isinstance(run_at, datetime):
        return run_at
    parsed = parse_datetime(run_at)
    if parsed is None:
        raise ValueError(f"Invalid run_at '{run_at}'")
    return parsed


def run_generation(run_at=None) -> dict:
    context = PayoutJobContext.for_run(run_at=_parse_run_at(run_at))
    logger.info("Generating vendor payouts for %s", context.note)
    return PayoutReconciler(context).generate_monthly_payouts().as_dict()


def run_disbursement(run_at=None, provider=None) -> dict:
    context = PayoutJobContext.for_run(
        run_at=_parse_run_at(run_at),
        provider=provider or PayoutProvider(),
    )
    logger.info("Disbursing pending vendor payouts at %s", context.run_at.isoformat())
    return PayoutReconciler(context).disburse_pending_payouts().as_dict()


@shared_task(name="payout.tasks.generate_monthly_payouts")
def generate_monthly_payouts(run_at: Optional[str] = None) -> dict:
    return run_generation(run_at)


@shared_task(name="payout.tasks.disburse_vendor_payouts")
def disburse_vendor_payouts(run_at: Optional[str] = None) -> dict:
    return run_disbursement(run_at)
