"""HTTP client for the file storage API."""

from typing import Any, Dict, List, Optional

import requests

from ..core.errors import SchemaSaveError, InvalidRequestError
from ..utils.logging_config import get_logger
from ..utils.validation import validate_storage_filename


class SchemaApiClient:
    """Thin requests-based client; no retries, every call is fire-and-forget."""

    def __init__(self, base_url: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = get_logger('server.client')

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def save_schema(self, csv_content: str, filename: str) -> Dict[str, Any]:
        """
        Replace a schema file on the server.

        Raises:
            InvalidRequestError: If the filename or content is rejected locally
            SchemaSaveError: If the server is unreachable or reports a failure
        """
        error = validate_storage_filename(filename)
        if error:
            raise InvalidRequestError(error)
        if not csv_content:
            raise InvalidRequestError("No CSV content provided")

        try:
            response = self.session.post(
                self._url("/api/save-schema"),
                json={"csv": csv_content, "filename": filename},
                timeout=self.timeout,
            )
            result = response.json()
        except requests.RequestException as e:
            raise SchemaSaveError(f"Storage API not reachable: {e}") from e
        except ValueError as e:
            raise SchemaSaveError(f"Storage API returned invalid JSON: {e}") from e

        if not response.ok or not result.get("success"):
            raise SchemaSaveError(result.get("error") or f"API save failed with HTTP {response.status_code}")

        self.logger.info(f"Schema saved to {result.get('path', filename)}")
        return result

    def get_schema(self, filename: str) -> str:
        """Return schema file content ('' when the file does not exist)."""
        result = self._get("/api/schema", params={"filename": filename})
        return result.get("content", "")

    def list_schemas(self) -> List[str]:
        return self._get("/api/schemas").get("files", [])

    def list_lineages(self) -> List[str]:
        return self._get("/api/lineages").get("files", [])

    def list_files(self) -> List[Dict[str, Any]]:
        return self._get("/api/files").get("files", [])

    def health(self) -> Dict[str, Any]:
        return self._get("/api/health")

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        response = self.session.get(self._url(path), params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()
