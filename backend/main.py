from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from database import get_db

# ENV
from config.env import CORS_ALLOWED_ORIGINS, ENV, LOG_LEVEL, validate_production_env

# ROUTES
from routes.auth import router as auth_router
from routes.cart import router as cart_router
from routes.categories import router as categories_router
from routes.ceo import router as ceo_router
from routes.placeholder import router as placeholder_router
from routes.products import router as products_router
from routes.public import router as public_router
from routes.seller import router as seller_router
from routes.superuser import router as superuser_router
from routes.user import profile_router, router as user_router

from utils.errors import StoreUnavailable
from utils.identity import resolve_principal
from utils.indexes import ensure_indexes
from utils.route_policy import authorize, classify, needs_principal

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

validate_production_env()
logger.info("ENV: %s", ENV)

app = FastAPI(
    title="Storefront API",
    version="1.0.0",
    docs_url=None if ENV == "production" else "/docs",
    redoc_url=None if ENV == "production" else "/redoc",
    openapi_url=None if ENV == "production" else "/openapi.json",
)

# -----------------------------
# ROUTE GATE
# -----------------------------

@app.middleware("http")
async def route_gate(request: Request, call_next):
    policy = classify(request.url.path)

    principal = None
    if needs_principal(policy):
        try:
            principal = await resolve_principal(get_db(), request)
        except PyMongoError:
            logger.exception("ROUTE_GATE_STORE_ERROR path=%s", request.url.path)
            return await http_error(request, StoreUnavailable())
        request.state.principal = principal

    decision = authorize(policy, principal)
    if not decision.allowed:
        logger.info(
            "ROUTE_GATE_DENIED path=%s policy=%s status=%s",
            request.url.path, policy.value, decision.status_code,
        )
        return JSONResponse(status_code=decision.status_code, content={"error": decision.error})

    return await call_next(request)

# -----------------------------
# CORS
# -----------------------------

allowed_origins = [origin.strip() for origin in CORS_ALLOWED_ORIGINS if origin.strip()]
if not allowed_origins:
    allowed_origins = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

# added last so it wraps the gate and answers preflights first
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------
# ERRORS
# -----------------------------

@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid input", "details": jsonable_errors(exc)},
    )


@app.exception_handler(PyMongoError)
async def store_error(request: Request, exc: PyMongoError):
    logger.exception("STORE_ERROR path=%s", request.url.path)
    return await http_error(request, StoreUnavailable())


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]

# -----------------------------
# ROUTES
# -----------------------------

app.include_router(auth_router)
app.include_router(user_router)
app.include_router(profile_router)
app.include_router(public_router)
app.include_router(placeholder_router)
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(seller_router)
app.include_router(cart_router)
app.include_router(superuser_router)
app.include_router(ceo_router)

# -----------------------------
# HEALTH CHECKS
# -----------------------------

@app.get("/api/health")
async def health():

    return {"status": "ok"}

@app.get("/api/health/db")
async def health_db():
    db = get_db()
    await db.command("ping")
    return {"status": "mongodb connected"}

# -----------------------------
# STARTUP
# -----------------------------

@app.on_event("startup")
async def create_indexes():
    try:
        await ensure_indexes(get_db())
    except (PyMongoError, RuntimeError):
        logger.exception("INDEX_SETUP_FAILED")
