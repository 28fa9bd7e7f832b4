"""Options Admin – FastAPI application serving reference options for the hierarchy editor."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.database import Base, engine
# Import models so Base.metadata has all tables before create_all (schema source of truth)
from app.models import ReferenceOption  # noqa: F401
from app.routers import options

settings = get_settings()
log = logging.getLogger("uvicorn.error")
app = FastAPI(title=settings.app_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(options.router)


def setup_database() -> None:
    Base.metadata.create_all(bind=engine)
    if not settings.seed_reference_options:
        return
    from app.database import SessionLocal
    from app.seed import seed_reference_options
    db = SessionLocal()
    try:
        seed_reference_options(db)
    finally:
        db.close()


@app.on_event("startup")
def startup():
    try:
        setup_database()
    except Exception as e:
        log.warning("Database startup failed (tables/seed skipped). Check DATABASE_URL. Error: %s", e)


@app.get("/")
def root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}
