from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from docflow.content.exceptions import ContentFetchError, UnsupportedLocationError


class ContentLoader:
    """Resolves an attachment's content location and reads its bytes.

    Supports ``http``/``https`` URLs (storage provider links), ``file`` URIs
    and plain filesystem paths. Relative paths resolve against ``files_root``.
    """

    REMOTE_SCHEMES = frozenset({"http", "https"})

    def __init__(self, client: httpx.Client, files_root: Path | None = None) -> None:
        self._client = client
        self._files_root = files_root

    def load(self, location: str) -> bytes:
        """Read attachment bytes.

        Raises:
            UnsupportedLocationError: for any other URI scheme.
            ContentFetchError: if the bytes cannot be read.
        """
        parsed = urlparse(location)
        scheme = parsed.scheme.lower()
        if scheme in self.REMOTE_SCHEMES:
            return self._fetch(location)
        if scheme == "file":
            return self._read(Path(unquote(parsed.path)))
        if scheme == "" or len(scheme) == 1:
            # A one-letter scheme is a Windows drive letter.
            return self._read(self._resolve_path(location))
        raise UnsupportedLocationError(f"Content location scheme '{scheme}' is not supported")

    def close(self) -> None:
        self._client.close()

    def _fetch(self, url: str) -> bytes:
        try:
            response = self._client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ContentFetchError(
                f"GET {url} returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ContentFetchError(f"GET {url} failed: {exc}") from exc
        return response.content

    def _resolve_path(self, location: str) -> Path:
        path = Path(location)
        if not path.is_absolute() and self._files_root is not None:
            return self._files_root / path
        return path

    @staticmethod
    def _read(path: Path) -> bytes:
        if not path.is_file():
            raise ContentFetchError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ContentFetchError(f"Failed to read {path}: {exc}") from exc
