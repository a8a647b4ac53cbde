import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from storefront.presentation.api import router
from storefront.database import create_tables

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await create_tables()
        logger.info("Tables ready")
    except Exception as e:
        logger.error(f"Could not create tables: {e}")

    yield

    logger.info("Storefront shutting down...")

app = FastAPI(
    title="Storefront Service",
    description="Book orders, manual bank-transfer payments and digital access",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Storefront service is running"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
