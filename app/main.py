from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.api import router
from app.config import get_settings
from app.errors import NoRuleMatched, PlanEngineError, PlanNotFound, ProfileNotFound, StorageReplaceFailure
import logging

settings = get_settings()

# Set up logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.exception_handler(PlanEngineError)
async def plan_engine_error_handler(request: Request, exc: PlanEngineError):
    headers = None
    if isinstance(exc, (ProfileNotFound, PlanNotFound)):
        status_code = 404
    elif isinstance(exc, NoRuleMatched):
        status_code = 422
    elif isinstance(exc, StorageReplaceFailure):
        status_code = 503
        headers = {"Retry-After": "1"}
    else:
        status_code = 500

    log = logger.error if status_code >= 500 else logger.warning
    log(f"{type(exc).__name__}: {exc.message} for {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__, "retryable": exc.retryable},
        headers=headers,
    )


@app.get("/")
async def health_check():
    return {"status": "healthy", "service": settings.app_name}
