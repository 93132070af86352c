import argparse
import sys
from pathlib import Path

from face_tracker.config import (
    CAMERA_FRONT_FACING,
    CAMERA_INDEX,
    CAPTURE_SAMPLES,
    PREVIEW_SCALE,
    REQUEST_TIMEOUT_SECONDS,
    SYNC_MAX_RETRIES,
    SYNC_URL,
    UPLOAD_DIR,
)
from face_tracker.exceptions import FaceTrackerError
from face_tracker.logger import setup_logger
from face_tracker.overlay import CameraFacing


def _add_camera_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--camera", type=int, default=CAMERA_INDEX, help="Webcam index")
    facing = parser.add_mutually_exclusive_group()
    facing.add_argument("--front", dest="front", action="store_true", help="Treat the webcam as front-facing (mirrored)")
    facing.add_argument("--back", dest="front", action="store_false", help="Treat the webcam as back-facing")
    parser.set_defaults(front=CAMERA_FRONT_FACING)
    parser.add_argument(
        "--preview-scale",
        type=float,
        default=PREVIEW_SCALE,
        help="Scale of the detection preview relative to the displayed frame",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Face tracking camera overlay and image sync")
    subparsers = parser.add_subparsers(dest="command", required=True)

    track = subparsers.add_parser("track", help="Show the live camera with face tracking overlay")
    _add_camera_args(track)

    capture = subparsers.add_parser("capture", help="Save face samples into the upload directory")
    _add_camera_args(capture)
    capture.add_argument("--samples", type=int, default=CAPTURE_SAMPLES, help="Number of face samples")
    capture.add_argument("--prefix", default="face", help="File name prefix for saved samples")
    capture.add_argument("--dir", type=Path, default=UPLOAD_DIR, help="Upload directory")

    sync = subparsers.add_parser("sync", help="Upload queued images to the sync endpoint")
    sync.add_argument("--dir", type=Path, default=UPLOAD_DIR, help="Upload directory")
    sync.add_argument("--url", default=SYNC_URL, help="Sync endpoint URL")
    sync.add_argument("--retries", type=int, default=SYNC_MAX_RETRIES, help="Retries for transient failures")
    sync.add_argument("--timeout", type=float, default=REQUEST_TIMEOUT_SECONDS, help="Request timeout in seconds")

    return parser


def _build_tracker(args: argparse.Namespace):
    from face_tracker.face_detector import FaceDetector
    from face_tracker.tracker_service import FaceTrackerService

    facing = CameraFacing.FRONT if args.front else CameraFacing.BACK
    return FaceTrackerService(detector=FaceDetector(), facing=facing, preview_scale=args.preview_scale)


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    logger = setup_logger("main")

    try:
        if args.command == "track":
            tracker = _build_tracker(args)
            tracker.run(camera_index=args.camera)
            print("Tracking stopped.")
            return 0

        if args.command == "capture":
            from face_tracker.capture_service import FaceCaptureService

            service = FaceCaptureService(_build_tracker(args), output_dir=args.dir, prefix=args.prefix)
            saved = service.run(camera_index=args.camera, target_samples=args.samples)
            print(f"Saved {len(saved)} face sample(s) to {args.dir}.")
            return 0

        if args.command == "sync":
            from face_tracker.image_sync import ImageSyncTask, ImageSyncWorker

            task = ImageSyncTask(
                upload_dir=args.dir,
                url=args.url,
                timeout_seconds=args.timeout,
                max_retries=args.retries,
            )
            worker = ImageSyncWorker(task).start()
            try:
                while worker.is_alive():
                    worker.join(timeout=0.5)
            except KeyboardInterrupt:
                worker.cancel()
                worker.join()
                raise

            report = worker.report
            if report is None:
                print(f"Sync failed: {worker.error}")
                return 1
            print(
                f"Sync complete: uploaded={report.uploaded}, failed={report.failed}, "
                f"rejected={report.rejected}, attempted={report.attempted}"
            )
            return 0 if report.failed == 0 and report.rejected == 0 else 1

    except FaceTrackerError as exc:
        logger.error("Application error: %s", exc)
        print(f"Error: {exc}")
        return 1
    except KeyboardInterrupt:
        print("\nStopped by user.")
        return 1
    except Exception as exc:
        logger.exception("Unexpected failure")
        print(f"Unexpected error: {exc}")
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
