import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .config import settings
from .db import Base, engine
from .routers import auth, snapshot, reports, classes, halaqah, users

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create DB tables (DEV ONLY, disable in production and use migrations instead)
if settings.AUTO_CREATE_TABLES:
    Base.metadata.create_all(bind=engine)

app = FastAPI(title="Halaqah Monthly Report API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.debug("CORS middleware installed with allow_origins=%s", settings.CORS_ORIGINS)
# --------------------------------------------------------
# ROUTES
# --------------------------------------------------------
app.include_router(auth.router)
app.include_router(snapshot.router)
app.include_router(reports.router)
app.include_router(classes.router)
app.include_router(halaqah.router)
app.include_router(users.router)

# --------------------------------------------------------
# ROOT ENDPOINT (for testing)
# --------------------------------------------------------
@app.get("/")
def root():
    return {"message": "Backend is running!"}
