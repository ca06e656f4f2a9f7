"""Protocols for archive transports.

The library does not care HOW a remote archive is fetched; install() only
needs something that can write a URL's bytes to a local file. Integrity is
re-verified by digest afterwards, so transports need not be trusted.
"""

from pathlib import Path
from typing import Protocol


class ArchiveFetcherProtocol(Protocol):
    """Protocol for remote archive transports.

    Example implementations:
    - HttpFetcher: plain HTTP(S) download (bundled)
    - A mirror- or proxy-aware fetcher supplied by the build script
    """

    def fetch(self, url: str, destination: Path) -> None:
        """Download url into destination.

        Args:
            url: Remote archive location
            destination: File to write (its parent directory exists)

        Raises:
            FetchError: If the download fails
        """
        ...
