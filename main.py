import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

import config
from database import init_models
from routers import auth, profile, events, invites, public
from utils.exceptions import AppError, ValidationError, PersistenceConflict, RenderError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.AUTO_CREATE_TABLES:
        await init_models()
    yield


app = FastAPI(
    title="EventSign API",
    version="1.0.0",
    description="Event agreements with customer signing links and RTL signed PDFs",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    content = {"message": exc.message}
    if isinstance(exc, RenderError):
        # render details stay in the log
        logger.error("Render failed on %s %s: %s", request.method, request.url.path, exc)
        content["message"] = RenderError.message
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        # ("body", "payload", "name") -> "payload.name"
        location = [str(part) for part in error["loc"] if part not in ("body", "query", "path")]
        errors.setdefault(".".join(location) or "body", []).append(error["msg"])
    return JSONResponse(status_code=400, content={"message": ValidationError.message, "errors": errors})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"message": PersistenceConflict.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": AppError.message})


# JWT authenticated routes (owner dashboard)
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(profile.router, prefix="/user", tags=["User Profile"])
app.include_router(events.router, prefix="/events", tags=["Events"])
app.include_router(invites.router, tags=["Invites"])

# Token addressed routes (customers)
app.include_router(public.router, tags=["Public"])


@app.get("/", tags=["Health"])
def health_check():
    logger.info("Health check requested")
    return {"message": "EventSign API is up and running"}
