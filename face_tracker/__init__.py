from .graphics import FaceGraphic
from .image_sync import ImageSyncTask, ImageSyncWorker, SyncReport
from .overlay import CameraFacing, Graphic, GraphicOverlay

__all__ = [
    "CameraFacing",
    "FaceGraphic",
    "Graphic",
    "GraphicOverlay",
    "ImageSyncTask",
    "ImageSyncWorker",
    "SyncReport",
]
