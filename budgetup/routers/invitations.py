"""Invitations router.

``/accept``, ``/details``, ``/stats`` and ``/cleanup`` are registered ahead
of ``/{invitation_id}``.
"""

from fastapi import APIRouter

from budgetup.api.invitations import handlers
from budgetup.schemas import (
    InvitationAccepted,
    InvitationCleanupResult,
    InvitationDetails,
    InvitationOut,
    InvitationStats,
)

router = APIRouter(prefix="/invitations", tags=["invitations"])

router.add_api_route(
    "",
    handlers.create_invitation,
    methods=["POST"],
    response_model=InvitationOut,
    status_code=201,
)

router.add_api_route(
    "",
    handlers.list_invitations,
    methods=["GET"],
    response_model=list[InvitationOut],
)

router.add_api_route(
    "/accept",
    handlers.accept_invitation,
    methods=["POST"],
    response_model=InvitationAccepted,
)

router.add_api_route(
    "/details",
    handlers.get_invitation_details,
    methods=["GET"],
    response_model=InvitationDetails,
)

router.add_api_route(
    "/stats",
    handlers.get_invitation_stats,
    methods=["GET"],
    response_model=InvitationStats,
)

router.add_api_route(
    "/cleanup",
    handlers.cleanup_invitations,
    methods=["POST"],
    response_model=InvitationCleanupResult,
)

router.add_api_route(
    "/{invitation_id}",
    handlers.update_invitation,
    methods=["PATCH"],
    response_model=InvitationOut,
)

router.add_api_route(
    "/{invitation_id}",
    handlers.revoke_invitation,
    methods=["DELETE"],
    status_code=204,
)
