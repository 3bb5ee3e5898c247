import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.core.config import settings
from shared.core.database import Base, engine
from shared.core.exception_handler import setup_exception_handlers
from shared.wrappers.response_wrapper import JsonResponseMiddleware

# Import all models so they are registered before create_all
from . import models
from .router import anomalies_router, companies_router, partnerships_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Fleet Service API")

# Create all tables
Base.metadata.create_all(bind=engine)

app.add_middleware(JsonResponseMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# Include routers
app.include_router(partnerships_router.router)
app.include_router(anomalies_router.router)
app.include_router(companies_router.router)


@app.get("/")
def root():
    return {"message": "Fleet Service API running"}
