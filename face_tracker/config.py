import os
from pathlib import Path


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _path_env(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return Path(raw.strip()).expanduser()


BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
LOG_DIR = _path_env("FACE_LOG_DIR", BASE_DIR / "logs")
LOG_LEVEL = _str_env("FACE_LOG_LEVEL", "INFO")

# Webcam settings
CAMERA_INDEX = _int_env("FACE_CAMERA_INDEX", 0)
FRAME_WIDTH = _int_env("FACE_FRAME_WIDTH", 1280)
FRAME_HEIGHT = _int_env("FACE_FRAME_HEIGHT", 720)
FRAME_FPS = _int_env("FACE_FRAME_FPS", 30)
CAMERA_FRONT_FACING = _bool_env("FACE_CAMERA_FRONT_FACING", True)

# Detection runs on a downscaled preview; the overlay maps it back to view space.
PREVIEW_SCALE = _float_env("FACE_PREVIEW_SCALE", 0.5)
FACE_DETECTION_THRESHOLD = _float_env("FACE_DETECTION_THRESHOLD", 0.6)
MIN_FACE_SIZE = _int_env("FACE_MIN_FACE_SIZE", 24)

# Tracking
IOU_THRESHOLD = _float_env("FACE_IOU_THRESHOLD", 0.3)
MAX_TRACK_AGE = _int_env("FACE_MAX_TRACK_AGE", 10)

# Overlay
DRAW_GUIDES = _bool_env("FACE_DRAW_GUIDES", True)
GUIDE_PAD = _int_env("FACE_GUIDE_PAD", 40)

# Capture settings
CAPTURE_SAMPLES = _int_env("FACE_CAPTURE_SAMPLES", 10)
SAMPLE_EVERY_N_FRAMES = _int_env("FACE_SAMPLE_EVERY_N_FRAMES", 5)
JPEG_QUALITY = _int_env("FACE_JPEG_QUALITY", 95)

# Image sync settings
UPLOAD_DIR = _path_env("FACE_UPLOAD_DIR", DATA_DIR / "IMAGE_DATA")
SYNC_URL = os.getenv("FACE_SYNC_URL", "http://127.0.0.1:5000/syncImage")
REQUEST_TIMEOUT_SECONDS = _float_env("FACE_REQUEST_TIMEOUT_SECONDS", 10.0)
SYNC_MAX_RETRIES = _int_env("FACE_SYNC_MAX_RETRIES", 3)
SYNC_BACKOFF_SECONDS = _float_env("FACE_SYNC_BACKOFF_SECONDS", 0.5)
REJECTED_DIR_NAME = "rejected"
