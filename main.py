"""SEIDO Interventions - Application principale"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.errors import WorkflowException, handle_error
from app.api.deps import ERROR_STATUS
from app.api.v1.api import api_router
from app.db import get_supabase
import logging

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="API SEIDO - Workflow des interventions (demandes, devis, planification, clôture)",
    version=settings.VERSION,
    debug=settings.DEBUG
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowException)
async def workflow_exception_handler(request: Request, exc: WorkflowException):
    """Exceptions du domaine levées hors d'un ServiceResult (dépendances)"""
    error = handle_error(exc, f"{request.method} {request.url.path}")
    return JSONResponse(
        status_code=ERROR_STATUS.get(error.kind, 500),
        content={"detail": {"kind": error.kind.value, "message": error.message}}
    )


@app.on_event("startup")
async def startup_event():
    try:
        get_supabase()
        logger.info("✓ Supabase connecté")
    except Exception as e:
        logger.error(f"✗ Erreur Supabase: {e}")
    logger.info(
        f"Planification: finalisation requise={settings.REQUIRE_SLOT_FINALIZATION}, "
        f"annulation auto des créneaux concurrents={settings.AUTO_CANCEL_SIBLING_SLOTS}"
    )


@app.get("/")
async def root():
    return {
        "app": settings.APP_NAME,
        "version": settings.VERSION,
        "status": "running",
        "emails": "resend" if settings.RESEND_API_KEY else "disabled"
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# Routes API
app.include_router(api_router, prefix="/api/v1")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
