from fastapi import APIRouter

from budgetup.api.invitations import handlers as invitation_handlers
from budgetup.api.organizations import handlers
from budgetup.schemas import InvitationAccepted, MembershipOut, OrganizationOut

router = APIRouter(prefix="/organizations", tags=["organizations"])

router.add_api_route(
    "",
    handlers.create_organization,
    methods=["POST"],
    response_model=OrganizationOut,
    status_code=201,
)

router.add_api_route(
    "",
    handlers.list_organizations,
    methods=["GET"],
    response_model=list[OrganizationOut],
)

router.add_api_route(
    "/join",
    invitation_handlers.join_organization,
    methods=["POST"],
    response_model=InvitationAccepted,
)

router.add_api_route(
    "/{organization_id}/members",
    handlers.list_members,
    methods=["GET"],
    response_model=list[MembershipOut],
)

router.add_api_route(
    "/{organization_id}/members",
    handlers.add_member,
    methods=["POST"],
    response_model=MembershipOut,
    status_code=201,
)

router.add_api_route(
    "/{organization_id}/members/{membership_id}",
    handlers.update_member,
    methods=["PATCH"],
    response_model=MembershipOut,
)

router.add_api_route(
    "/{organization_id}/members/{membership_id}",
    handlers.remove_member,
    methods=["DELETE"],
    status_code=204,
)
