"""Router aggregation.

Each feature module owns an ``APIRouter`` whose routes delegate to the
handler functions in ``budgetup.api.<feature>.handlers``.
"""

from fastapi import FastAPI

from . import accounts, audit_logs, categories, invitations, metrics, organizations, transactions, users


def register_routers(app: FastAPI) -> None:
    """Attach all API routes to the FastAPI application."""

    app.include_router(users.router, prefix="/api")
    app.include_router(organizations.router, prefix="/api")
    app.include_router(invitations.router, prefix="/api")
    app.include_router(accounts.router, prefix="/api")
    app.include_router(categories.router, prefix="/api")
    app.include_router(transactions.router, prefix="/api")
    app.include_router(metrics.router, prefix="/api")
    app.include_router(audit_logs.router, prefix="/api")
