from fastapi import APIRouter

from budgetup.api.audit_logs import handlers
from budgetup.schemas import AuditLogOut

router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])

router.add_api_route(
    "",
    handlers.list_audit_logs,
    methods=["GET"],
    response_model=list[AuditLogOut],
)

router.add_api_route(
    "/manual",
    handlers.create_manual_audit_log,
    methods=["POST"],
    response_model=AuditLogOut,
    status_code=201,
)
