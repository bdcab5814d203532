import threading
import time

import cv2
import numpy as np


class WebState:
    """
    Frame and status store shared between the detection loop and the web
    server. Doubles as the loop's display sink and status sink.

    The stream endpoint reads from a worker thread, so the frame is guarded
    by a lock.
    """

    def __init__(self):
        self.frame = None
        self.frame_lock = threading.Lock()
        self.status_message = ""
        self.last_frame_ts = None

    # DisplaySink
    def show(self, surface: np.ndarray) -> bool:
        """Store the latest rendered surface."""
        with self.frame_lock:
            self.frame = surface.copy()
            self.last_frame_ts = time.time()
        return True

    def close(self) -> None:
        with self.frame_lock:
            self.frame = None

    # StatusSink
    def set_status(self, message: str) -> None:
        self.status_message = message

    def get_frame(self):
        """Get a copy of the latest rendered surface, or None."""
        with self.frame_lock:
            if self.frame is None:
                return None
            return self.frame.copy()

    def get_jpeg(self, quality: int = 80):
        """Latest surface encoded as JPEG bytes, or None if there is none yet."""
        frame = self.get_frame()
        if frame is None:
            return None
        ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
        if not ok:
            return None
        return buf.tobytes()
