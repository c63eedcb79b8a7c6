"""Accounts router."""

from fastapi import APIRouter

from budgetup.api.accounts import handlers
from budgetup.schemas import AccountBalancesOut, AccountOut

router = APIRouter(prefix="/accounts", tags=["accounts"])

router.add_api_route(
    "",
    handlers.create_account,
    methods=["POST"],
    response_model=AccountOut,
    status_code=201,
)

router.add_api_route(
    "",
    handlers.list_accounts,
    methods=["GET"],
    response_model=list[AccountOut],
)

# registered before "/{account_id}" so "balances" isn't parsed as an id
router.add_api_route(
    "/balances",
    handlers.get_account_balances,
    methods=["GET"],
    response_model=AccountBalancesOut,
)

router.add_api_route(
    "/{account_id}",
    handlers.get_account,
    methods=["GET"],
    response_model=AccountOut,
)

router.add_api_route(
    "/{account_id}",
    handlers.update_account,
    methods=["PATCH"],
    response_model=AccountOut,
)

router.add_api_route(
    "/{account_id}",
    handlers.delete_account,
    methods=["DELETE"],
    status_code=204,
)
