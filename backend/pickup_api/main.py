from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette import status

from .config import settings
from .services.errors import PickupError
from .routers import pickups as pickups_router
from .routers import dispatch as dispatch_router
from .routers import collectors as collectors_router
from .routers import organizations as organizations_router
from .routers import listings as listings_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("pickup_api")

app = FastAPI(title="Pickup Dispatch API", version="0.1.0")

@app.exception_handler(PickupError)
async def pickup_error_handler(request: Request, exc: PickupError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "code": exc.code})

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # short message first, full list for debugging
    errors = exc.errors()
    first = errors[0] if errors else {}
    friendly = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={"detail": friendly, "code": "validation_error", "errors": jsonable_encoder(errors)},
    )

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    # never expose internals to the client
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal error. Please try again."},
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/healthz")
def healthz():
    return {"status": "ok"}

app.include_router(pickups_router.router)
app.include_router(dispatch_router.router)
app.include_router(collectors_router.router)
app.include_router(organizations_router.router)
app.include_router(listings_router.router)
