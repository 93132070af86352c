"""Uploads queued face images to the sync endpoint.

The upload directory is the queue: every regular file in it is one pending
upload. Each image is re-encoded as base64 JPEG and POSTed as
``{"image_name": ..., "base64_image": ...}``. A file is deleted only once the
server answers with a 2xx status. Transient failures are retried with
exponential backoff and the file is left in place when retries run out;
permanent failures are moved into the ``rejected/`` subdirectory.
"""

from __future__ import annotations

import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

import requests

from .config import (
    JPEG_QUALITY,
    REJECTED_DIR_NAME,
    REQUEST_TIMEOUT_SECONDS,
    SYNC_BACKOFF_SECONDS,
    SYNC_MAX_RETRIES,
    SYNC_URL,
    UPLOAD_DIR,
)
from .exceptions import PermanentUploadError, TransientUploadError, UploadError
from .image_codec import UploadRecord, build_upload_record
from .logger import setup_logger

RETRYABLE_STATUS_CODES = {408, 429}


@dataclass
class SyncReport:
    attempted: int = 0
    uploaded: int = 0
    failed: int = 0
    rejected: int = 0
    cancelled: bool = False
    uploaded_names: List[str] = field(default_factory=list)
    failed_names: List[str] = field(default_factory=list)
    rejected_names: List[str] = field(default_factory=list)


class ImageSyncTask:
    def __init__(
        self,
        upload_dir: Path = UPLOAD_DIR,
        url: str = SYNC_URL,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        max_retries: int = SYNC_MAX_RETRIES,
        backoff_seconds: float = SYNC_BACKOFF_SECONDS,
        jpeg_quality: int = JPEG_QUALITY,
        session: Optional[requests.Session] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.upload_dir = Path(upload_dir)
        self.rejected_dir = self.upload_dir / REJECTED_DIR_NAME
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(0, int(max_retries))
        self.backoff_seconds = max(0.0, float(backoff_seconds))
        self.jpeg_quality = jpeg_quality
        self._owns_session = session is None
        self.session = session or requests.Session()
        self._cancel = cancel_event or threading.Event()
        self.logger = setup_logger(self.__class__.__name__)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        self._cancel.set()

    def pending_files(self) -> List[Path]:
        if not self.upload_dir.is_dir():
            self.logger.warning("Upload directory %s does not exist", self.upload_dir)
            return []
        return sorted(p for p in self.upload_dir.iterdir() if p.is_file())

    def run(self) -> SyncReport:
        report = SyncReport()
        files = self.pending_files()
        self.logger.info("Syncing %d image(s) from %s to %s", len(files), self.upload_dir, self.url)

        try:
            for path in files:
                if self.cancelled:
                    report.cancelled = True
                    self.logger.info("Sync cancelled with %d file(s) left", len(files) - report.attempted)
                    break

                report.attempted += 1
                try:
                    self.sync_file(path)
                except PermanentUploadError as exc:
                    self.logger.error("Rejected %s: %s", path.name, exc)
                    try:
                        self._reject(path)
                    except OSError as move_exc:
                        self.logger.error("Could not move %s to %s: %s", path.name, self.rejected_dir, move_exc)
                        report.failed += 1
                        report.failed_names.append(path.name)
                        continue
                    report.rejected += 1
                    report.rejected_names.append(path.name)
                except OSError as exc:
                    self.logger.error("File error while syncing %s: %s", path.name, exc)
                    report.failed += 1
                    report.failed_names.append(path.name)
                except UploadError as exc:
                    self.logger.warning("Keeping %s for next sync: %s", path.name, exc)
                    report.failed += 1
                    report.failed_names.append(path.name)
                else:
                    report.uploaded += 1
                    report.uploaded_names.append(path.name)
            if self.cancelled:
                report.cancelled = True
        finally:
            if self._owns_session:
                self.session.close()

        self.logger.info(
            "Sync finished: uploaded=%d failed=%d rejected=%d",
            report.uploaded,
            report.failed,
            report.rejected,
        )
        return report

    def sync_file(self, path: Path) -> str:
        record = build_upload_record(path, quality=self.jpeg_quality)
        body = self._post_with_retry(record)
        # Another sync run may already have removed it.
        path.unlink(missing_ok=True)
        return body

    def _post_with_retry(self, record: UploadRecord) -> str:
        attempt = 0
        while True:
            try:
                return self.post(record)
            except TransientUploadError as exc:
                if attempt >= self.max_retries:
                    raise
                delay = self.backoff_seconds * (2 ** attempt)
                attempt += 1
                self.logger.warning(
                    "Upload of %s failed (%s), retry %d/%d in %.2fs",
                    record.image_name,
                    exc,
                    attempt,
                    self.max_retries,
                    delay,
                )
                if self._cancel.wait(delay):
                    raise TransientUploadError("Sync cancelled during backoff.", image_name=record.image_name) from exc

    def post(self, record: UploadRecord) -> str:
        """POST one record and return the raw response text."""
        try:
            resp = self.session.post(
                self.url,
                json=record.to_payload(),
                headers={"Accept": "application/json"},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise TransientUploadError(f"Request failed: {exc}", image_name=record.image_name) from exc

        body = resp.text
        self.logger.info("Sync response for %s (%d): %s", record.image_name, resp.status_code, body)

        if resp.status_code >= 500 or resp.status_code in RETRYABLE_STATUS_CODES:
            raise TransientUploadError(f"Server returned {resp.status_code}", image_name=record.image_name)
        if resp.status_code >= 400:
            raise PermanentUploadError(f"Server rejected image with {resp.status_code}", image_name=record.image_name)
        return body

    def _reject(self, path: Path) -> Path:
        self.rejected_dir.mkdir(parents=True, exist_ok=True)
        target = self.rejected_dir / path.name
        suffix = 1
        while target.exists():
            target = self.rejected_dir / f"{path.stem}_{suffix}{path.suffix}"
            suffix += 1
        shutil.move(str(path), str(target))
        return target


class ImageSyncWorker:
    """Runs an :class:`ImageSyncTask` on a background thread."""

    def __init__(
        self,
        task: ImageSyncTask,
        on_complete: Optional[Callable[[Optional[SyncReport]], None]] = None,
    ):
        self.task = task
        self.on_complete = on_complete
        self.report: Optional[SyncReport] = None
        self.error: Optional[BaseException] = None
        self._thread: Optional[threading.Thread] = None
        self.logger = setup_logger(self.__class__.__name__)

    def start(self) -> "ImageSyncWorker":
        if self._thread and self._thread.is_alive():
            return self
        self._thread = threading.Thread(target=self._run, name="ImageSync", daemon=True)
        self._thread.start()
        return self

    def is_alive(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def cancel(self) -> None:
        self.task.cancel()

    def join(self, timeout: Optional[float] = None) -> Optional[SyncReport]:
        if self._thread is not None:
            self._thread.join(timeout)
        return self.report

    def _run(self) -> None:
        try:
            self.report = self.task.run()
        except Exception as exc:
            self.error = exc
            self.logger.exception("Image sync failed")
        finally:
            if self.on_complete is not None:
                self.on_complete(self.report)
