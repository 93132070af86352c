import os
import tempfile

os.environ.setdefault("FACE_LOG_DIR", os.path.join(tempfile.gettempdir(), "face_tracker_test_logs"))
