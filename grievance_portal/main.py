"""Main FastAPI application entry point."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from grievance_portal import config
from grievance_portal.database import engine, Base, SessionLocal
from grievance_portal.logging_config import configure_logging, get_logger
from grievance_portal.api.routes import router, portal_error_handler
from grievance_portal.services.accounts import AccountRegistry
from grievance_portal.services.errors import PortalError
# Import models to register them with SQLAlchemy Base
from grievance_portal.models.domain import Account, Grievance
from grievance_portal.models.audit import WorkflowLog

configure_logging()
log = get_logger("main")

# Create database tables
Base.metadata.create_all(bind=engine)


def seed_admin_from_env() -> None:
    """Bootstrap the first admin so someone can approve registrations."""
    if not (config.ADMIN_EMAIL and config.ADMIN_PASSWORD):
        log.warning("admin_not_seeded", reason="ADMIN_EMAIL or ADMIN_PASSWORD not set")
        return
    db = SessionLocal()
    try:
        AccountRegistry(db).seed_admin(config.ADMIN_NAME, config.ADMIN_EMAIL, config.ADMIN_PASSWORD)
    finally:
        db.close()


seed_admin_from_env()

# Create FastAPI app
app = FastAPI(
    title="Exam Grievance Portal",
    description="Students file exam grievances, faculty review them, administrators resolve them.",
    version="0.1.0"
)

# Enable CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # For MVP - restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(PortalError, portal_error_handler)

# Include API routes
app.include_router(router, prefix="/api", tags=["Grievances"])


# Health check
@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "Exam Grievance Portal"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
