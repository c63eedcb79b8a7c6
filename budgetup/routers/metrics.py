from fastapi import APIRouter

from budgetup.api.metrics import handlers
from budgetup.schemas import KpisOut, MonthlyBalanceOut, TopAccountsOut, TopCategoriesOut

router = APIRouter(prefix="/metrics", tags=["metrics"])

router.add_api_route("/kpis", handlers.get_kpis, methods=["GET"], response_model=KpisOut)
router.add_api_route("/monthly", handlers.get_monthly_balance, methods=["GET"], response_model=MonthlyBalanceOut)
router.add_api_route("/top-categories", handlers.get_top_categories, methods=["GET"], response_model=TopCategoriesOut)
router.add_api_route("/top-accounts", handlers.get_top_accounts, methods=["GET"], response_model=TopAccountsOut)
