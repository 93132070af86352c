from __future__ import annotations

import base64
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

import cv2
import numpy as np

from .config import JPEG_QUALITY
from .exceptions import PermanentUploadError


@dataclass(frozen=True)
class UploadRecord:
    image_name: str
    base64_image: str

    def to_payload(self) -> Dict[str, str]:
        return {"image_name": self.image_name, "base64_image": self.base64_image}


def load_image(path: Path) -> np.ndarray:
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise PermanentUploadError(f"Unable to decode image {path.name}.", image_name=path.name)
    return image


def image_to_base64(image: np.ndarray, quality: int = JPEG_QUALITY) -> str:
    ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    if not ok:
        raise PermanentUploadError("JPEG encoding failed.")
    return base64.b64encode(buffer.tobytes()).decode("ascii")


def build_upload_record(path: Path, quality: int = JPEG_QUALITY) -> UploadRecord:
    image = load_image(path)
    try:
        payload = image_to_base64(image, quality=quality)
    except PermanentUploadError as exc:
        raise PermanentUploadError(f"{exc} ({path.name})", image_name=path.name) from exc
    return UploadRecord(image_name=path.name, base64_image=payload)
