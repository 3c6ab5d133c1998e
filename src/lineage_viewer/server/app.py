"""File storage API for lineage and schema CSV files."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from ..utils.logging_config import get_logger
from ..utils.validation import validate_storage_filename

DEFAULT_SCHEMA_FILENAME = "schema.csv"

logger = get_logger('server')


class SaveSchemaRequest(BaseModel):
    csv: Optional[str] = None
    filename: Optional[str] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _list_files(data_dir: Path, prefix: str = "", suffix: str = ".csv"):
    if not data_dir.exists():
        return []
    return sorted(
        path for path in data_dir.iterdir()
        if path.is_file() and path.name.startswith(prefix) and path.name.endswith(suffix)
    )


def create_app(data_dir: Union[str, Path]) -> FastAPI:
    """
    Create the storage API serving CSV files from a single directory.

    Args:
        data_dir: Directory holding lineage and schema CSV files

    Returns:
        Configured FastAPI application
    """
    data_dir = Path(data_dir)
    app = FastAPI(title="Lineage Viewer Storage API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.data_dir = data_dir

    @app.get("/api/health")
    def health():
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data_dir": str(data_dir),
            "data_dir_exists": data_dir.exists(),
        }

    @app.get("/api/schema")
    def get_schema(filename: str = Query(default=DEFAULT_SCHEMA_FILENAME)):
        error = validate_storage_filename(filename)
        if error:
            logger.warning(f"Rejected schema read for filename {filename!r}: {error}")
            return _error(400, error)

        path = data_dir / filename
        if not path.is_file():
            return {"success": True, "content": "", "filename": filename, "message": "File not found"}
        return {"success": True, "content": path.read_text(encoding="utf-8"), "filename": filename}

    @app.post("/api/save-schema")
    def save_schema(request: SaveSchemaRequest):
        filename = request.filename or DEFAULT_SCHEMA_FILENAME
        error = validate_storage_filename(filename)
        if error:
            logger.warning(f"Rejected schema save for filename {filename!r}: {error}")
            return _error(400, error)
        if not request.csv:
            return _error(400, "No CSV content provided")

        data_dir.mkdir(parents=True, exist_ok=True)
        path = data_dir / filename
        path.write_text(request.csv, encoding="utf-8")
        size = len(request.csv)
        logger.info(f"Schema saved: {path} ({size} bytes)")
        return {
            "success": True,
            "message": "Schema saved successfully",
            "filename": filename,
            "path": str(path),
            "size": size,
        }

    @app.get("/api/schemas")
    def list_schemas():
        return {"success": True, "files": [path.name for path in _list_files(data_dir, prefix="schema")]}

    @app.get("/api/lineages")
    def list_lineages():
        return {"success": True, "files": [path.name for path in _list_files(data_dir, prefix="lineage")]}

    @app.get("/api/files")
    def list_files():
        files = []
        for path in _list_files(data_dir):
            stats = path.stat()
            files.append({
                "name": path.name,
                "size": stats.st_size,
                "modified": datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc).isoformat(),
            })
        return {"success": True, "files": files}

    @app.get("/data/{filename}")
    def get_data_file(filename: str):
        error = validate_storage_filename(filename)
        if error:
            return _error(400, error)
        path = data_dir / filename
        if not path.is_file():
            return _error(404, f"File {filename} not found")
        return PlainTextResponse(path.read_text(encoding="utf-8"), media_type="text/csv")

    return app
