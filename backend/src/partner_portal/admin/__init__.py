"""Admin console: dashboard rollups and the submission status workflow."""

from partner_portal.admin.aggregation import AdminAggregationService, aggregation_service, conversion_rate
from partner_portal.admin.workflow import StatusWorkflow, status_workflow

__all__ = [
    "AdminAggregationService",
    "StatusWorkflow",
    "aggregation_service",
    "conversion_rate",
    "status_workflow",
]
