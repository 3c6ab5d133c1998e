"""Sources of raw CSV text: a local directory or a static HTTP location."""

from pathlib import Path
from typing import Optional, Protocol, Union

import requests

from ..utils.logging_config import get_logger
from ..utils.validation import validate_storage_filename


class DataSourceError(Exception):
    """The data source could not be reached or returned an unexpected response."""


class DataSource(Protocol):
    """Protocol for CSV text providers."""

    def fetch_text(self, filename: str) -> Optional[str]:
        """Return the file content, or None when the file does not exist."""
        ...

    def describe(self) -> str:
        ...


class LocalDataSource:
    """Reads CSV files from a directory."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)
        self.logger = get_logger('loader.local')

    def fetch_text(self, filename: str) -> Optional[str]:
        error = validate_storage_filename(filename)
        if error:
            raise DataSourceError(f"{error}: {filename}")
        path = self.data_dir / filename
        if not path.is_file():
            self.logger.debug(f"File not found: {path}")
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (UnicodeDecodeError, OSError) as e:
            raise DataSourceError(f"Could not read {filename}: {e}") from e

    def describe(self) -> str:
        return str(self.data_dir)


class HttpDataSource:
    """Fetches CSV files as static text from a base URL."""

    def __init__(self, base_url: str, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.logger = get_logger('loader.http')

    def fetch_text(self, filename: str) -> Optional[str]:
        url = f"{self.base_url}/{filename}"
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise DataSourceError(f"Could not reach {url}: {e}") from e

        if response.status_code == 404:
            self.logger.debug(f"File not found: {url}")
            return None
        if not response.ok:
            raise DataSourceError(f"GET {url} returned HTTP {response.status_code}")
        response.encoding = response.encoding or "utf-8"
        return response.text

    def describe(self) -> str:
        return self.base_url
