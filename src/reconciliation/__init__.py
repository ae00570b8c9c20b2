from .poller import CycleReport, ReconciliationPoller
from .retry import RetryPolicy

__all__ = ["ReconciliationPoller", "CycleReport", "RetryPolicy"]
