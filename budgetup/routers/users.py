from fastapi import APIRouter

from budgetup.api.users import handlers
from budgetup.schemas import UserOut

router = APIRouter(prefix="/users", tags=["users"])

router.add_api_route(
    "",
    handlers.create_user,
    methods=["POST"],
    response_model=UserOut,
    status_code=201,
)

router.add_api_route(
    "/me",
    handlers.get_me,
    methods=["GET"],
    response_model=UserOut,
)
