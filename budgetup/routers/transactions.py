"""Transactions router.

Fixed paths (``/totals``, ``/import``, ``/export``) are registered ahead of
``/{txn_id}``.
"""

from fastapi import APIRouter

from budgetup.api.transactions import handlers
from budgetup.schemas import TransactionImportResult, TransactionOut, TransactionTotalsResponse

router = APIRouter(prefix="/transactions", tags=["transactions"])

router.add_api_route(
    "",
    handlers.list_transactions,
    methods=["GET"],
    response_model=list[TransactionOut],
)

router.add_api_route(
    "",
    handlers.create_transaction,
    methods=["POST"],
    response_model=TransactionOut,
    status_code=201,
)

router.add_api_route(
    "/totals",
    handlers.get_totals,
    methods=["GET"],
    response_model=TransactionTotalsResponse,
)

router.add_api_route(
    "/import",
    handlers.import_transactions,
    methods=["POST"],
    response_model=TransactionImportResult,
)

router.add_api_route(
    "/export",
    handlers.export_transactions,
    methods=["GET"],
)

router.add_api_route(
    "/{txn_id}",
    handlers.get_transaction,
    methods=["GET"],
    response_model=TransactionOut,
)

router.add_api_route(
    "/{txn_id}",
    handlers.update_transaction,
    methods=["PATCH"],
    response_model=TransactionOut,
)

router.add_api_route(
    "/{txn_id}",
    handlers.delete_transaction,
    methods=["DELETE"],
    status_code=204,
)
