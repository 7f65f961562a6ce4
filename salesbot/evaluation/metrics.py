"""
Funnel statistics for the admin overview.

Counts per state plus the conversion figures the operator watches:
how many customers asked for a trial, how many trials were activated,
how many became subscribers, and how many needed a human.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from salesbot.schemas.customer_schema import CustomerContext, CustomerState

logger = logging.getLogger(__name__)


@dataclass
class FunnelMetrics:
    """Aggregated funnel figures over a set of customers."""

    total: int = 0
    by_state: dict[str, int] = field(default_factory=dict)
    trial_requests: int = 0
    trials_activated: int = 0
    subscribers: int = 0
    escalations: int = 0
    payments_pending: int = 0

    trial_to_subscriber_rate: float = 0.0
    escalation_rate: float = 0.0


class FunnelMetricsCalculator:
    """Calculates funnel metrics from context snapshots."""

    def calculate(self, contexts: Iterable[CustomerContext]) -> FunnelMetrics:
        metrics = FunnelMetrics(by_state={state.value: 0 for state in CustomerState})

        for ctx in contexts:
            metrics.total += 1
            metrics.by_state[ctx.state.value] += 1
            if ctx.has_device_details() and ctx.content_preference is not None:
                metrics.trial_requests += 1
            if ctx.trial_started_at is not None:
                metrics.trials_activated += 1
            if ctx.state == CustomerState.ACTIVE_SUBSCRIBER:
                metrics.subscribers += 1
            if ctx.needs_human:
                metrics.escalations += 1
            if ctx.payment_pending:
                metrics.payments_pending += 1

        metrics.trial_to_subscriber_rate = metrics.subscribers / max(metrics.trials_activated, 1)
        metrics.escalation_rate = metrics.escalations / max(metrics.total, 1)
        return metrics

    def format_report(self, metrics: FunnelMetrics) -> str:
        """Format metrics into a human-readable report."""
        lines = [
            "=" * 60,
            "SALES FUNNEL REPORT",
            "=" * 60,
            "",
            f"  Customers:              {metrics.total}",
            f"  Trial requests:         {metrics.trial_requests}",
            f"  Trials activated:       {metrics.trials_activated}",
            f"  Subscribers:            {metrics.subscribers}",
            f"  Payments to verify:     {metrics.payments_pending}",
            f"  Escalations:            {metrics.escalations}",
            "",
            f"  Trial -> subscriber:    {metrics.trial_to_subscriber_rate:.1%}",
            f"  Escalation rate:        {metrics.escalation_rate:.1%}",
            "",
            "BY STATE",
        ]
        for state, count in metrics.by_state.items():
            if count:
                lines.append(f"  {state:<24}{count}")
        lines.append("=" * 60)
        return "\n".join(lines)
