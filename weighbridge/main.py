import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from weighbridge.core.config import settings
from weighbridge.core.db import Base, SessionLocal, engine
from weighbridge.core.logging import configure_logging
from weighbridge.domains.dashboard.router import router as dashboard_router
from weighbridge.domains.identity.router import router as identity_router
from weighbridge.domains.identity.service import ensure_bootstrap_admin
from weighbridge.domains.purchase_orders.router import router as purchase_orders_router
from weighbridge.domains.registration.router import router as registration_router
from weighbridge.domains.trips.router import router as trips_router
from weighbridge.domains.unloading.router import router as unloading_router
from weighbridge.domains.weights.router import router as weights_router

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)


@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(request, exc: RequestValidationError):
    # Do not log full bodies outside dev: registration payloads carry Aadhaar numbers.
    if settings.env == "dev":
        logger.debug("422 path=%s errors=%s", request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(e.get("loc", [])), "msg": str(e.get("msg", "")), "type": e.get("type")} for e in exc.errors()]


origins = [o.strip() for o in settings.cors_allow_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins if origins else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup() -> None:
    # Auto-create tables; switch to migrations once the schema settles.
    Base.metadata.create_all(bind=engine)
    bootstrap_admin()
    logger.info("%s started (env=%s)", settings.app_name, settings.env)


def bootstrap_admin() -> None:
    if not (settings.bootstrap_admin_username and settings.bootstrap_admin_email and settings.bootstrap_admin_password):
        return
    db = SessionLocal()
    try:
        ensure_bootstrap_admin(
            db,
            username=settings.bootstrap_admin_username,
            email=settings.bootstrap_admin_email,
            password=settings.bootstrap_admin_password,
        )
    finally:
        db.close()


@app.get("/health")
def health() -> dict:
    return {"ok": True, "service": settings.app_name, "env": settings.env}


app.include_router(identity_router, tags=["identity"])
app.include_router(registration_router, tags=["registration"])
app.include_router(purchase_orders_router, tags=["purchase-orders"])
app.include_router(trips_router, tags=["trips"])
app.include_router(weights_router, tags=["weights"])
app.include_router(unloading_router, tags=["material-unloading"])
app.include_router(dashboard_router, tags=["dashboard"])
