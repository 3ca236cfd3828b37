"""
Records Pro - Hospital Records Management API
Patient records, user administration and reporting over JSON file storage,
with real-time change notifications.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import auth, patients, realtime, reports, users
from .api.deps import get_user_store
from .core.audit_middleware import AuditMiddleware
from .core.config import settings
from .core.errors import RecordsError
from .seed_demo import seed_demo_data
from .services.user_service import UserService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Seed demo users (idempotent)
if settings.SEED_DEMO_USERS:
    seed_demo_data(UserService(get_user_store()))

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Hospital records management: authentication, patient records with "
        "role-scoped updates, user administration, reporting and real-time "
        "change notifications."
    ),
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CLIENT_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(AuditMiddleware)


@app.exception_handler(RecordsError)
async def records_error_handler(request: Request, exc: RecordsError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.details})


app.include_router(auth.router, prefix="/api")
app.include_router(patients.router, prefix="/api")
app.include_router(reports.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(realtime.router)


@app.get("/")
def root():
    return {"ok": True, "name": settings.APP_NAME}


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}
