"""
HTTP API for Table Nova.

Provides endpoints for:
- Converting an uploaded CSV/TSV/XLSX file into a stored run
- Previewing an upload (header, first rows, derived column keys)
- Listing, reloading, exporting and deleting stored runs
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, File, Form, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field

from table_nova import __version__
from table_nova.config import TableNovaConfig, configure_logging
from table_nova.engine import (
    BUSY_ERROR,
    INPUT_ERROR,
    INVALID_ERROR,
    NOT_FOUND_ERROR,
    RunOutcome,
    TableNovaEngine,
)
from table_nova.models import FileOptions, RunSummary

ERROR_STATUS = {
    INPUT_ERROR: 400,
    INVALID_ERROR: 400,
    NOT_FOUND_ERROR: 404,
    BUSY_ERROR: 409,
}


# =============================================================================
# Response models
# =============================================================================

class RunSummaryResponse(BaseModel):
    """Metadata of one stored run."""
    graph_iri: str = Field(..., description="Named graph IRI (store key)")
    filename: str = Field(..., description="Original input filename")
    created_at: str = Field(..., description="Creation instant, ISO 8601")

    @classmethod
    def from_summary(cls, summary: RunSummary) -> "RunSummaryResponse":
        return cls(
            graph_iri=summary.graph_iri,
            filename=summary.filename,
            created_at=summary.created_at.isoformat(),
        )


class RunResponse(BaseModel):
    """A stored run with its serializations."""
    graph_iri: str
    filename: str
    created_at: str
    quad_count: int
    column_keys: List[str] = Field(default_factory=list)
    serializations: Dict[str, str] = Field(default_factory=dict)


class PreviewResponse(BaseModel):
    """Parsed header, first rows and derived column keys of an upload."""
    filename: str
    header: Optional[List[str]]
    rows: List[List[str]]
    column_keys: List[str]


def outcome_error(outcome: RunOutcome) -> HTTPException:
    """Map a failed outcome to an HTTP error."""
    status = ERROR_STATUS.get(outcome.error_kind, 500)
    return HTTPException(
        status_code=status,
        detail={
            "kind": outcome.error_kind,
            "operation": outcome.operation,
            "target": outcome.target,
            "message": outcome.message,
            "persisted": outcome.persisted,
        },
    )


def parse_options(raw: Optional[str], defaults: FileOptions) -> FileOptions:
    if not raw:
        return defaults
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("options must be a JSON object")
        return FileOptions.from_dict(data)
    except (ValueError, TypeError, AttributeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid options JSON: {str(e)}")


def run_response(outcome: RunOutcome) -> RunResponse:
    run = outcome.run
    return RunResponse(
        graph_iri=run.graph_iri,
        filename=run.filename,
        created_at=run.created_at.isoformat(),
        quad_count=len(run.quads),
        column_keys=outcome.column_keys,
        serializations=outcome.serializations.to_dict(),
    )


# =============================================================================
# Router
# =============================================================================

def create_runs_router(engine: TableNovaEngine) -> APIRouter:
    """
    Create the runs API router.

    Args:
        engine: Engine that owns the run store and serializer

    Returns:
        APIRouter mounted under /runs
    """
    router = APIRouter(prefix="/runs", tags=["Runs"])

    @router.get("")
    async def list_runs():
        """List stored runs, newest first."""
        outcome = await asyncio.to_thread(engine.list_runs)
        if not outcome.ok:
            raise outcome_error(outcome)
        return {
            "count": len(outcome.runs),
            "runs": [RunSummaryResponse.from_summary(r).model_dump() for r in outcome.runs],
        }

    @router.post("", response_model=RunResponse)
    async def create_run(
        file: UploadFile = File(..., description="CSV, TSV or XLSX file to convert"),
        options: Optional[str] = Form(None, description="File options as JSON"),
    ):
        """Convert an upload, store it as a named graph, and return all serializations."""
        file_options = parse_options(options, engine.config.default_file_options)
        content = await file.read()
        filename = file.filename or "upload.csv"
        outcome = await asyncio.to_thread(engine.run_file, filename, content, file_options)
        if not outcome.ok:
            raise outcome_error(outcome)
        return run_response(outcome)

    @router.post("/preview", response_model=PreviewResponse)
    async def preview_run(
        file: UploadFile = File(..., description="CSV, TSV or XLSX file to inspect"),
        options: Optional[str] = Form(None, description="File options as JSON"),
        limit: int = Form(5, ge=0),
    ):
        """Parse an upload without storing it."""
        file_options = parse_options(options, engine.config.default_file_options)
        content = await file.read()
        filename = file.filename or "upload.csv"
        outcome = await asyncio.to_thread(engine.preview, filename, content, file_options, limit)
        if not outcome.ok:
            raise outcome_error(outcome)
        return PreviewResponse(
            filename=filename,
            header=outcome.preview.header,
            rows=outcome.preview.rows,
            column_keys=outcome.column_keys,
        )

    @router.get("/graph", response_model=RunResponse)
    async def get_run(iri: str = Query(..., description="Graph IRI of the run")):
        """Reload a stored run and re-serialize it with the current prefixes."""
        outcome = await asyncio.to_thread(engine.load_run, iri)
        if not outcome.ok:
            raise outcome_error(outcome)
        return run_response(outcome)

    @router.get("/graph/export")
    async def export_run(
        iri: str = Query(..., description="Graph IRI of the run"),
        syntax: str = Query("turtle", description="turtle, trig, ntriples, nquads, jsonldTriples, jsonldGraph"),
    ):
        """Download one serialization of a stored run."""
        outcome = await asyncio.to_thread(engine.export, iri, syntax)
        if not outcome.ok:
            raise outcome_error(outcome)
        exported = outcome.export
        return Response(
            content=exported.text,
            media_type=exported.media_type,
            headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
        )

    @router.delete("/graph")
    async def delete_run(iri: str = Query(..., description="Graph IRI of the run")):
        outcome = await asyncio.to_thread(engine.delete_run, iri)
        if not outcome.ok:
            raise outcome_error(outcome)
        return {"deleted": iri}

    return router


def create_app(
    config: Optional[TableNovaConfig] = None,
    engine: Optional[TableNovaEngine] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Configuration (loaded from the environment if not provided)
        engine: Optional engine instance (built from config if not provided)

    Returns:
        Configured FastAPI application
    """
    if engine is None:
        config = config or TableNovaConfig.from_env()
        engine = TableNovaEngine(config)

    allowed_origins_env = os.getenv("TABLENOVA_CORS_ORIGINS", "")
    allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()] or ["*"]

    app = FastAPI(
        title="Table Nova API",
        description="Tabular data to RDF named graphs",
        version=__version__,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    app.state.engine = engine
    app.include_router(create_runs_router(engine))

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "version": __version__}

    return app


if __name__ == "__main__":
    import uvicorn

    _config = TableNovaConfig.from_env()
    configure_logging(_config.log_level)
    uvicorn.run(create_app(_config), host="0.0.0.0", port=8000)
