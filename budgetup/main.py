from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.log import configure_logging
from .domain.errors import ReferentialDeleteBlocked, TransactionValidationError
from .routers import register_routers

logger = configure_logging(settings.LOG_LEVEL)

app = FastAPI(title=settings.APP_NAME, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "Content-Disposition"],
)


@app.exception_handler(TransactionValidationError)
async def transaction_validation_error(request: Request, exc: TransactionValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.exception_handler(ReferentialDeleteBlocked)
async def referential_delete_blocked(request: Request, exc: ReferentialDeleteBlocked) -> JSONResponse:
    body = exc.to_dict()
    body["references"] = exc.references
    return JSONResponse(status_code=409, content=body)


@app.get("/health")
def health():
    return {"status": "ok"}


register_routers(app)
logger.info("%s started (env=%s)", settings.APP_NAME, settings.ENV)
