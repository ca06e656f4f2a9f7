"""HTTP archive transport."""

import logging
from pathlib import Path

import requests

from .exceptions import FetchError

logger = logging.getLogger(__name__)


class HttpFetcher:
    """Stream an archive over HTTP(S) with requests."""

    def __init__(self, timeout: float = 60, chunk_size: int = 65536):
        self.timeout = timeout
        self.chunk_size = chunk_size

    def fetch(self, url: str, destination: Path) -> None:
        logger.info(f"Downloading {url}")
        try:
            with requests.get(url, stream=True, timeout=self.timeout) as response:
                response.raise_for_status()
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        f.write(chunk)
        except requests.RequestException as e:
            raise FetchError(f"Failed to download {url}: {e}", context={"url": url}) from e
        logger.debug(f"Downloaded {url} to {destination}")
