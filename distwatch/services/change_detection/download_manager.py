"""
Download Manager Service

Retrieves the monitored artifact and populates the current snapshot:
download with retries, archive validation and safe extraction.
"""

import os
import tempfile
import time
import zipfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import requests

from distwatch.core.config import DownloadSettings, settings
from distwatch.core.domain.entities import iter_regular_files
from distwatch.core.exceptions import ArchiveValidationError, DownloadError, DistWatchError
from distwatch.core.logging_config import get_logger

# ======================== DATA MODELS ========================

@dataclass
class DownloadResult:
    """Result of a download-and-extract operation with all metadata."""
    url: str
    success: bool
    size_bytes: int = 0
    files_extracted: int = 0
    download_time_ms: int = 0
    attempts: int = 0
    error_message: Optional[str] = None

# ======================== DOWNLOAD MANAGER CLASS ========================

class DownloadManager:
    """
    Handles artifact retrieval with retries and validation.

    Features:
    - Bounded retry loop with fixed delay
    - Partial-download cleanup
    - Size and ZIP validation
    - Path-safe extraction
    """

    def __init__(
        self,
        config: Optional[DownloadSettings] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.config = config or settings.download
        self.logger = get_logger(__name__)
        self.session = session or self._create_session()
        self.sleep = sleep

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({
            'User-Agent': self.config.user_agent,
            'Accept': 'application/zip, application/octet-stream, */*'
        })
        return session

    # ======================== MAIN DOWNLOAD METHODS ========================

    def download(self, url: str, dest: Path) -> int:
        """
        Download url to dest, retrying on failure.

        Returns:
            Number of attempts used

        Raises:
            DownloadError: every attempt failed
        """
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        last_error = None

        for attempt in range(1, self.config.retry_attempts + 1):
            self.logger.info(f"Download attempt {attempt} of {self.config.retry_attempts}: {url}")
            try:
                with self.session.get(
                    url,
                    timeout=(self.config.connect_timeout, self.config.timeout),
                    stream=True,
                    allow_redirects=True
                ) as response:
                    response.raise_for_status()
                    with open(dest, 'wb') as fh:
                        for chunk in response.iter_content(chunk_size=65536):
                            if chunk:
                                fh.write(chunk)
                self.logger.info(f"Download completed successfully on attempt {attempt}")
                return attempt
            except (requests.exceptions.RequestException, OSError) as e:
                last_error = e
                self.logger.warning(f"Download attempt {attempt} failed: {e}")
                if dest.exists():
                    dest.unlink()
                if attempt < self.config.retry_attempts:
                    self.logger.info(f"Waiting {self.config.retry_delay} seconds before retry...")
                    self.sleep(self.config.retry_delay)

        raise DownloadError(url, f"all {self.config.retry_attempts} attempts failed: {last_error}",
                            cause=last_error)

    def validate(self, path: Path) -> int:
        """
        Check size and archive format.

        Returns:
            File size in bytes
        """
        path = Path(path)
        if not path.is_file():
            raise ArchiveValidationError(str(path), "downloaded file does not exist")

        size = path.stat().st_size
        if size < self.config.min_file_size:
            raise ArchiveValidationError(
                str(path),
                f"file too small ({size} bytes, expected at least {self.config.min_file_size} bytes)"
            )
        if not zipfile.is_zipfile(path):
            raise ArchiveValidationError(str(path), "not a valid ZIP archive")

        self.logger.info(f"File validation passed - size: {size} bytes")
        return size

    def extract(self, archive: Path, dest_dir: Path) -> int:
        """
        Extract archive into dest_dir, refusing members that escape it.

        Returns:
            Number of regular files under dest_dir after extraction
        """
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        root = dest_dir.resolve()

        try:
            with zipfile.ZipFile(archive) as zf:
                for member in zf.namelist():
                    target = (root / member).resolve()
                    if target != root and root not in target.parents:
                        raise ArchiveValidationError(str(archive), f"member escapes extraction root: {member}")
                zf.extractall(root)
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveValidationError(str(archive), f"failed to extract: {e}", cause=e) from e

        count = sum(1 for _ in iter_regular_files(dest_dir))
        self.logger.info(f"Extracted {count} files into {dest_dir}")
        return count

    def download_and_extract(self, url: str, dest_dir: Path) -> DownloadResult:
        """Download, validate and extract; the temporary archive never outlives the call."""
        start_time = datetime.now()
        result = DownloadResult(url=url, success=False)

        fd, temp_name = tempfile.mkstemp(suffix=".zip", prefix="distwatch-")
        os.close(fd)
        temp_archive = Path(temp_name)
        try:
            result.attempts = self.download(url, temp_archive)
            result.size_bytes = self.validate(temp_archive)
            result.files_extracted = self.extract(temp_archive, dest_dir)
            result.success = True
        except DistWatchError as e:
            self.logger.error(e.message)
            result.error_message = e.message
        finally:
            temp_archive.unlink(missing_ok=True)
            result.download_time_ms = int((datetime.now() - start_time).total_seconds() * 1000)

        return result

__all__ = ['DownloadManager', 'DownloadResult']
