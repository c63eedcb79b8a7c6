from fastapi import APIRouter

from budgetup.api.categories import handlers
from budgetup.schemas import CategoryOut

router = APIRouter(prefix="/categories", tags=["categories"])

router.add_api_route(
    "",
    handlers.create_category,
    methods=["POST"],
    response_model=CategoryOut,
    status_code=201,
)

router.add_api_route(
    "",
    handlers.list_categories,
    methods=["GET"],
    response_model=list[CategoryOut],
)

router.add_api_route(
    "/{category_id}",
    handlers.get_category,
    methods=["GET"],
    response_model=CategoryOut,
)

router.add_api_route(
    "/{category_id}",
    handlers.update_category,
    methods=["PATCH"],
    response_model=CategoryOut,
)

router.add_api_route(
    "/{category_id}",
    handlers.delete_category,
    methods=["DELETE"],
    status_code=204,
)
