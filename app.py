from fastapi import FastAPI, HTTPException, UploadFile, File
from fastapi.concurrency import run_in_threadpool
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging

from config import settings
from models.metrics import MetricsResult
from services import SheetImportError, SheetMetricsService
from services.errors import USER_FACING_UPLOAD_ERROR

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    cutoff = settings.report_cutoff_date or "today"
    logger.info(f"[STARTUP] env={settings.app_env}, cutoff={cutoff}, churn statuses={settings.churn_statuses}")

    yield

    logger.info("[SHUTDOWN] Stopped")


app = FastAPI(
    title="Subscription Metrics",
    description="MRR, churn, LTV and monthly trends from an uploaded subscription spreadsheet",
    version="1.0.0",
    lifespan=lifespan,
)


def get_metrics_service() -> SheetMetricsService:
    """Fresh pipeline per upload, nothing is shared between requests"""
    return SheetMetricsService(settings)


@app.get("/")
async def index():
    """Welcome message"""
    return {"message": "Welcome to API!", "environment": settings.app_env}


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


@app.post("/sheets/send", response_model=MetricsResult)
async def upload_sheet(file: Optional[UploadFile] = File(None)):
    """
    Upload a subscription spreadsheet and get its metrics summary
    """
    if file is None:
        raise HTTPException(status_code=400, detail=USER_FACING_UPLOAD_ERROR)

    if file.size is not None and file.size > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Uploaded file is too large")

    content = await file.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Uploaded file is too large")

    service = get_metrics_service()

    try:
        # Decoding and aggregation are CPU-bound and run to completion off the event loop
        return await run_in_threadpool(service.process_sheet, content, file.filename or "")

    except SheetImportError as e:
        logger.warning(f"Upload of '{file.filename}' rejected: {e.detail or e.user_message}")
        raise HTTPException(status_code=400, detail=e.user_message)

    except Exception:
        logger.exception(f"Upload of '{file.filename}' failed")
        raise HTTPException(status_code=500, detail="Internal error while processing the uploaded file")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host="127.0.0.1",
        port=settings.port,
        reload=settings.app_env == "dev",
    )
