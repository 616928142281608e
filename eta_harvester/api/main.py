"""FastAPI main application exposing the harvesting engine."""
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from eta_harvester.browser.playwright_document import PlaywrightDocument
from eta_harvester.config import Config, config
from eta_harvester.harvester import InvoiceHarvester
from eta_harvester.logging_conf import setup_logging
from eta_harvester.parse.models import DetailsResult, HarvestResult, PageData, ProgressEvent

logger = logging.getLogger(__name__)

app = FastAPI(title="ETA Invoice Harvester API", version="0.1.0")

# API Key security (if configured)
API_KEY_HEADER = APIKeyHeader(name="X-API-KEY", auto_error=False)

PROGRESS_BUFFER_SIZE = 100


def verify_api_key(api_key: str = Depends(API_KEY_HEADER)) -> bool:
    """Verify API key if configured."""
    expected_key = config.API_KEY
    if expected_key:
        if not api_key or api_key != expected_key:
            raise HTTPException(status_code=403, detail="Invalid API key")
    return True


def attach_harvester(harvester: InvoiceHarvester) -> None:
    """Install a harvester and route its progress events into the buffer."""
    app.state.harvester = harvester
    app.state.progress = deque(maxlen=PROGRESS_BUFFER_SIZE)
    harvester.add_progress_listener(app.state.progress.append)


def get_harvester(request: Request) -> InvoiceHarvester:
    harvester = getattr(request.app.state, "harvester", None)
    if harvester is None:
        raise HTTPException(status_code=503, detail="Harvester not ready")
    return harvester


@app.on_event("startup")
async def startup():
    """Open the portal in a browser unless a harvester was attached already."""
    if getattr(app.state, "harvester", None) is not None:
        return
    setup_logging()
    Config.validate()
    document = PlaywrightDocument()
    await document.open()
    app.state.document = document
    harvester = InvoiceHarvester(document)
    attach_harvester(harvester)
    await harvester.start()


@app.on_event("shutdown")
async def shutdown():
    harvester = getattr(app.state, "harvester", None)
    if harvester is not None:
        harvester.close()
    document = getattr(app.state, "document", None)
    if document is not None:
        await document.close()


class HarvestRequest(BaseModel):
    """Opaque export options; only 'progress' is consulted by the engine."""
    options: dict[str, Any] = Field(default_factory=lambda: {"progress": True})


@app.get("/health")
async def health(request: Request):
    """Health check endpoint (no auth required)."""
    harvester: Optional[InvoiceHarvester] = getattr(request.app.state, "harvester", None)
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "ready": harvester is not None,
        "harvest_in_progress": bool(harvester and harvester.harvest_in_progress),
    }


@app.get("/page", response_model=PageData)
async def current_page(
    harvester: InvoiceHarvester = Depends(get_harvester),
    _: bool = Depends(verify_api_key),
):
    """Records and pagination from the last scan."""
    return harvester.get_current_page_data()


@app.post("/rescan", response_model=PageData)
async def rescan(
    harvester: InvoiceHarvester = Depends(get_harvester),
    _: bool = Depends(verify_api_key),
):
    """Scan the current page now."""
    return await harvester.rescan()


@app.post("/harvest", response_model=HarvestResult)
async def harvest(
    request: HarvestRequest,
    harvester: InvoiceHarvester = Depends(get_harvester),
    _: bool = Depends(verify_api_key),
):
    """Harvest every page; returns once the run completes or is rejected."""
    return await harvester.harvest_all_pages(request.options)


@app.get("/records/{record_id}/details", response_model=DetailsResult)
async def record_details(
    record_id: str,
    harvester: InvoiceHarvester = Depends(get_harvester),
    _: bool = Depends(verify_api_key),
):
    return await harvester.get_record_details(record_id)


@app.get("/progress", response_model=list[ProgressEvent])
async def progress(request: Request, _: bool = Depends(verify_api_key)):
    """Most recent progress events (best effort, no replay)."""
    return list(getattr(request.app.state, "progress", ()))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
