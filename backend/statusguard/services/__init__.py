"""Services for probing, scheduling and incident management."""
from .prober import ProberService, ProbeResult
from .result_store import ResultStore
from .service_directory import ServiceDirectory
from .incident_ledger import IncidentLedger
from .evaluator import OutcomeEvaluator
from .incident_manager import IncidentLifecycleManager
from .notifier import NotificationHub, WebhookRelay
from .scheduler import SchedulerService, CycleReport

__all__ = [
    "ProberService",
    "ProbeResult",
    "ResultStore",
    "ServiceDirectory",
    "IncidentLedger",
    "OutcomeEvaluator",
    "IncidentLifecycleManager",
    "NotificationHub",
    "WebhookRelay",
    "SchedulerService",
    "CycleReport",
]
