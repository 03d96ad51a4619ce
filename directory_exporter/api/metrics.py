from typing import List

from fastapi import APIRouter, Depends, Response

from ..dependencies import get_engine
from ..models import DirectoryStatus
from ..services.exporter_engine import ExporterEngine

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def metrics(engine: ExporterEngine = Depends(get_engine)) -> Response:
    """Prometheus text exposition of the last published values."""
    sink = engine.sink
    return Response(content=sink.render(), media_type=sink.content_type)


@router.get("/api/directories", response_model=List[DirectoryStatus])
async def list_directories(
    engine: ExporterEngine = Depends(get_engine),
) -> List[DirectoryStatus]:
    """
    Registered directories and their schedule.

    Includes entries added at runtime for symlink aliases and unknown
    event paths.
    """
    return engine.directory_statuses()
