from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.tracking import router as tracking_router, sessions_router, shutdown_registry
from app.api.notifications import router as notifications_router
from app.db import Base, engine
from app.models.pet import Pet  # noqa: F401  (import ensures table is registered)
from app.models.foster_application import FosterApplication  # noqa: F401
from app.models.tracking_data import TrackingData  # noqa: F401
from app.models.notification import Notification  # noqa: F401
from app.core.config import settings
from app.core.logger import setup_logger


setup_logger(level=settings.log_level, log_file=settings.log_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # No live session may outlive the app
    await shutdown_registry()


app = FastAPI(lifespan=lifespan)

# Allow CORS for local frontend
origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Create DB tables (pets, tracking_data, etc.) on startup
Base.metadata.create_all(bind=engine)

app.include_router(tracking_router)
app.include_router(sessions_router)
app.include_router(notifications_router)


@app.get("/")
def root():
    return {"message": "Pet tracker backend is running"}
