class FaceTrackerError(Exception):
    """Base exception for the face tracker."""


class CameraError(FaceTrackerError):
    """Raised when webcam access fails."""


class FaceDetectorError(FaceTrackerError):
    """Raised when face detector initialization or inference fails."""


class UploadError(FaceTrackerError):
    """Raised when an image cannot be synced to the remote endpoint."""

    def __init__(self, message: str, image_name: str | None = None):
        super().__init__(message)
        self.image_name = image_name


class TransientUploadError(UploadError):
    """Network-level failure worth retrying (timeouts, 5xx, throttling)."""


class PermanentUploadError(UploadError):
    """Failure that will not go away on retry (bad image, rejected payload)."""
