from salesbot.evaluation.metrics import FunnelMetricsCalculator

__all__ = ["FunnelMetricsCalculator"]
