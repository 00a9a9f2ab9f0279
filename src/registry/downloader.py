"""Download of release archives into the MOD directory."""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Optional

import requests

from common.http_client import stream_get
from common.logging_utils import Timer, safe_url
from constants import Constants
from errors import DownloadError
from registry.models import Release

logger = logging.getLogger(__name__)


class Downloader:
    """Fetches release archives with portal credentials.

    Each download writes to a temporary sibling of the destination and is
    renamed into place only after the SHA-1 matches, so concurrent
    downloads to distinct paths never observe partial files.
    """

    def __init__(self, base_url: Optional[str] = None, username: Optional[str] = None,
                 token: Optional[str] = None) -> None:
        self.base_url = (base_url or Constants.REGISTRY_URL).rstrip("/")
        self.username = username
        self.token = token

    def _url(self, release: Release) -> str:
        url = release.download_url
        if not url.startswith(("http://", "https://")):
            url = self.base_url + "/" + url.lstrip("/")
        return url

    def _params(self) -> dict:
        if self.username and self.token:
            return {"username": self.username, "token": self.token}
        return {}

    def download(self, release: Release, output_path: Path) -> Path:
        """Download ``release`` to ``output_path``.

        Raises:
            DownloadError: transport failure, non-200 status, or checksum
                mismatch. No partial file is left behind.
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = output_path.with_name(output_path.name + ".part")
        url = self._url(release)
        digest = hashlib.sha1()

        with Timer() as t:
            try:
                with stream_get(url, params=self._params()) as response:
                    if response.status_code != 200:
                        raise DownloadError(
                            f"Download of {release.file_name} failed with status {response.status_code}",
                            context={"url": safe_url(response.url or url), "status": response.status_code},
                        )
                    with open(tmp_path, "wb") as handle:
                        for chunk in response.iter_content(chunk_size=Constants.DOWNLOAD_CHUNK_SIZE):
                            if chunk:
                                handle.write(chunk)
                                digest.update(chunk)
            except (requests.RequestException, OSError) as exc:
                _discard(tmp_path)
                raise DownloadError(
                    f"Download of {release.file_name} failed: {exc}", context={"url": safe_url(url)}
                ) from exc
            except DownloadError:
                _discard(tmp_path)
                raise

        if release.sha1 and digest.hexdigest() != release.sha1.lower():
            _discard(tmp_path)
            raise DownloadError(
                f"Checksum mismatch for {release.file_name}: expected {release.sha1}, got {digest.hexdigest()}",
                context={"file": release.file_name},
            )

        os.replace(tmp_path, output_path)
        logger.info("Downloaded %s (%.0f ms)", output_path.name, t.duration_ms())
        return output_path


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
