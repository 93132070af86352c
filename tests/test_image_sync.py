import base64
import threading
import time
from pathlib import Path

import cv2
import numpy as np
import pytest
import requests

from face_tracker.exceptions import PermanentUploadError
from face_tracker.image_codec import build_upload_record
from face_tracker.image_sync import ImageSyncTask, ImageSyncWorker

SYNC_URL = "http://sync.test/syncImage"


class FakeResponse:
    def __init__(self, status_code=200, text='{"ok": true}'):
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.calls = []
        self.closed = False

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        outcome = self.outcomes.pop(0) if self.outcomes else FakeResponse()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def _write_image(path, value=128):
    image = np.full((16, 24, 3), value, dtype=np.uint8)
    assert cv2.imwrite(str(path), image)
    return path


def _task(upload_dir, session, **kwargs):
    kwargs.setdefault("backoff_seconds", 0.0)
    return ImageSyncTask(upload_dir=upload_dir, url=SYNC_URL, session=session, **kwargs)


def test_empty_directory_makes_no_requests(tmp_path):
    session = FakeSession()
    report = _task(tmp_path, session).run()

    assert session.calls == []
    assert report.attempted == 0


def test_missing_directory_makes_no_requests(tmp_path):
    session = FakeSession()
    report = _task(tmp_path / "missing", session).run()

    assert session.calls == []
    assert report.attempted == 0


def test_every_file_is_posted_once_and_deleted(tmp_path):
    names = ["a.jpg", "b.png", "c.jpg"]
    for i, name in enumerate(names):
        _write_image(tmp_path / name, value=40 * i)
    session = FakeSession()

    report = _task(tmp_path, session, timeout_seconds=3.0).run()

    assert [call["json"]["image_name"] for call in session.calls] == names
    assert report.uploaded == 3
    assert report.uploaded_names == names
    assert list(tmp_path.iterdir()) == []
    for call in session.calls:
        assert call["url"] == SYNC_URL
        assert call["headers"] == {"Accept": "application/json"}
        assert call["timeout"] == 3.0
        assert set(call["json"]) == {"image_name", "base64_image"}
        assert base64.b64decode(call["json"]["base64_image"])[:2] == b"\xff\xd8"
    assert session.closed is False


def test_transient_failure_is_retried(tmp_path):
    _write_image(tmp_path / "face.jpg")
    session = FakeSession([FakeResponse(503, "busy"), requests.ConnectionError("reset"), FakeResponse(200)])

    report = _task(tmp_path, session, max_retries=2).run()

    assert len(session.calls) == 3
    assert report.uploaded == 1
    assert not (tmp_path / "face.jpg").exists()


def test_file_is_kept_when_retries_run_out(tmp_path):
    _write_image(tmp_path / "face.jpg")
    session = FakeSession([FakeResponse(500, "boom")] * 3)

    report = _task(tmp_path, session, max_retries=2).run()

    assert len(session.calls) == 3
    assert report.failed == 1
    assert report.failed_names == ["face.jpg"]
    assert (tmp_path / "face.jpg").exists()


def test_timeout_is_transient(tmp_path):
    _write_image(tmp_path / "face.jpg")
    session = FakeSession([requests.Timeout("slow")])

    report = _task(tmp_path, session, max_retries=0).run()

    assert report.failed == 1
    assert (tmp_path / "face.jpg").exists()


def test_client_error_rejects_file(tmp_path):
    _write_image(tmp_path / "face.jpg")
    session = FakeSession([FakeResponse(400, "bad payload")])

    report = _task(tmp_path, session, max_retries=3).run()

    assert len(session.calls) == 1
    assert report.rejected == 1
    assert not (tmp_path / "face.jpg").exists()
    assert (tmp_path / "rejected" / "face.jpg").exists()


def test_undecodable_file_is_rejected_without_request(tmp_path):
    (tmp_path / "notes.jpg").write_bytes(b"not an image")
    _write_image(tmp_path / "z.jpg")
    session = FakeSession()

    report = _task(tmp_path, session).run()

    assert [call["json"]["image_name"] for call in session.calls] == ["z.jpg"]
    assert report.rejected_names == ["notes.jpg"]
    assert report.uploaded_names == ["z.jpg"]

    second = FakeSession()
    assert _task(tmp_path, second).run().attempted == 0
    assert second.calls == []


def test_cancelled_task_leaves_files(tmp_path):
    _write_image(tmp_path / "face.jpg")
    session = FakeSession()
    task = _task(tmp_path, session)
    task.cancel()

    report = task.run()

    assert report.cancelled is True
    assert report.attempted == 0
    assert session.calls == []
    assert (tmp_path / "face.jpg").exists()


def test_build_upload_record_rejects_undecodable_file(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"\x00\x01")

    with pytest.raises(PermanentUploadError) as excinfo:
        build_upload_record(path)
    assert excinfo.value.image_name == "broken.jpg"


def test_worker_runs_task_in_background(tmp_path):
    _write_image(tmp_path / "face.jpg")
    session = FakeSession()
    done = threading.Event()
    results = []

    def on_complete(report):
        results.append(report)
        done.set()

    worker = ImageSyncWorker(_task(tmp_path, session), on_complete=on_complete).start()
    report = worker.join(timeout=10)

    assert done.wait(timeout=10)
    assert report is not None
    assert report.uploaded == 1
    assert results == [report]
    assert worker.error is None
    assert threading.current_thread() is not worker._thread


class DeletingSession(FakeSession):
    """Removes the posted file before answering, as a concurrent sync run would."""

    def __init__(self, upload_dir):
        super().__init__()
        self.upload_dir = upload_dir

    def post(self, url, json=None, headers=None, timeout=None):
        (self.upload_dir / json["image_name"]).unlink()
        return super().post(url, json=json, headers=headers, timeout=timeout)


def test_file_removed_during_upload_does_not_stop_sync(tmp_path):
    _write_image(tmp_path / "a.jpg")
    _write_image(tmp_path / "b.jpg")
    session = DeletingSession(tmp_path)

    report = _task(tmp_path, session).run()

    assert [call["json"]["image_name"] for call in session.calls] == ["a.jpg", "b.jpg"]
    assert report.attempted == 2
    assert report.uploaded_names == ["a.jpg", "b.jpg"]


def test_unlink_error_counts_as_failed_and_sync_continues(tmp_path, monkeypatch):
    _write_image(tmp_path / "a.jpg")
    _write_image(tmp_path / "b.jpg")
    real_unlink = Path.unlink

    def unlink(self, missing_ok=False):
        if self.name == "a.jpg":
            raise PermissionError("read-only queue")
        return real_unlink(self, missing_ok=missing_ok)

    monkeypatch.setattr(Path, "unlink", unlink)
    session = FakeSession()

    report = _task(tmp_path, session).run()

    assert len(session.calls) == 2
    assert report.failed_names == ["a.jpg"]
    assert report.uploaded_names == ["b.jpg"]
    assert (tmp_path / "a.jpg").exists()


def test_rejected_file_does_not_overwrite_earlier_rejection(tmp_path):
    rejected = tmp_path / "rejected"
    rejected.mkdir()
    (rejected / "face.jpg").write_bytes(b"first")
    (rejected / "face_1.jpg").write_bytes(b"second")
    (tmp_path / "face.jpg").write_bytes(b"third")

    report = _task(tmp_path, FakeSession()).run()

    assert report.rejected_names == ["face.jpg"]
    assert (rejected / "face.jpg").read_bytes() == b"first"
    assert (rejected / "face_1.jpg").read_bytes() == b"second"
    assert (rejected / "face_2.jpg").read_bytes() == b"third"


def test_cancel_during_backoff_returns_promptly(tmp_path):
    _write_image(tmp_path / "a.jpg")
    _write_image(tmp_path / "b.jpg")
    session = FakeSession([FakeResponse(503, "busy")] * 5)
    task = _task(tmp_path, session, max_retries=3, backoff_seconds=30.0)
    timer = threading.Timer(0.2, task.cancel)

    started = time.monotonic()
    timer.start()
    try:
        report = task.run()
    finally:
        timer.cancel()

    assert time.monotonic() - started < 5
    assert report.cancelled is True
    assert [call["json"]["image_name"] for call in session.calls] == ["a.jpg"]
    assert report.failed_names == ["a.jpg"]
    assert (tmp_path / "a.jpg").exists()
    assert (tmp_path / "b.jpg").exists()


def test_cancel_on_last_file_marks_report_cancelled(tmp_path):
    _write_image(tmp_path / "a.jpg")
    session = FakeSession([FakeResponse(503, "busy")] * 5)
    task = _task(tmp_path, session, max_retries=3, backoff_seconds=30.0)
    timer = threading.Timer(0.2, task.cancel)

    timer.start()
    try:
        report = task.run()
    finally:
        timer.cancel()

    assert report.cancelled is True
    assert (tmp_path / "a.jpg").exists()


def test_worker_cancel_stops_backoff(tmp_path):
    _write_image(tmp_path / "a.jpg")
    _write_image(tmp_path / "b.jpg")
    session = FakeSession([FakeResponse(503, "busy")] * 5)
    worker = ImageSyncWorker(_task(tmp_path, session, max_retries=3, backoff_seconds=30.0)).start()

    deadline = time.monotonic() + 5
    while not session.calls and time.monotonic() < deadline:
        time.sleep(0.01)
    worker.cancel()
    report = worker.join(timeout=5)

    assert not worker.is_alive()
    assert report is not None
    assert report.cancelled is True
    assert len(session.calls) == 1
    assert (tmp_path / "a.jpg").exists()
    assert (tmp_path / "b.jpg").exists()
