"""Frame source abstractions.

The frame loop consumes frames through a small interface (`FrameSource`) so
the capture implementation (webcam, video file, image sequence, polled image)
can be swapped without affecting arbitration. `read()` returning `None` means
the stream has ended; it is a normal termination, not an error.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from enum import Enum
from pathlib import Path

import cv2

from follower.core.errors import SourceUnavailable
from follower.core.types import Frame

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff")


class SourceKind(str, Enum):
    """Kind of input named by one line of a list file."""

    IMAGE = "image"
    VIDEO = "video"
    WEBCAM = "webcam"
    VIDEOS_FOLDER = "videos_folder"
    FROM_FILE = "from_file"


class FrameSource(ABC):
    """Base interface for anything that can produce frames."""

    @abstractmethod
    def read(self) -> Frame | None:
        """Return the next frame, or `None` at end of stream."""

        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release any underlying resources."""

        raise NotImplementedError

    def interrupt(self) -> None:
        """Make a pending or future `read()` return `None` soon.

        Safe to call from another thread, unlike `close()`. Sources whose
        `read()` returns within a frame period need not override it.
        """

    def __iter__(self) -> Iterator[Frame]:
        while True:
            frame = self.read()
            if frame is None:
                return
            yield frame

    def __enter__(self) -> FrameSource:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class OpenCVSource(FrameSource):
    """A `FrameSource` backed by `cv2.VideoCapture`."""

    def __init__(self, source: str | int) -> None:
        self.cap = cv2.VideoCapture(source)
        if not self.cap.isOpened():
            raise SourceUnavailable(f"Failed to open video source: {source}")

    def read(self) -> Frame | None:
        """Read the next frame from the underlying OpenCV capture."""

        ok, frame = self.cap.read()
        if not ok:
            return None
        return frame

    def close(self) -> None:
        """Release the underlying OpenCV capture."""

        self.cap.release()


class VideoFileSource(OpenCVSource):
    """Video file decoded as fast as the consumer pulls; ends at EOF."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(path)

    def read(self) -> Frame | None:
        frame = super().read()
        if frame is None:
            logger.info("End of video %s", self.path)
        return frame


class WebcamSource(OpenCVSource):
    """Live camera capture, requested at 640x480."""

    def __init__(self, index: int = 0, width: int = 640, height: int = 480) -> None:
        super().__init__(index)
        logger.info("Opened camera index=%s", index)

        # Not every backend honors these; ignore refusals.
        for prop, value in (
            (cv2.CAP_PROP_BUFFERSIZE, 1),
            (cv2.CAP_PROP_FRAME_WIDTH, width),
            (cv2.CAP_PROP_FRAME_HEIGHT, height),
        ):
            try:
                self.cap.set(prop, value)
            except Exception:
                logger.debug("Camera refused property %s=%s", prop, value)


class ImageSource(FrameSource):
    """A single still image delivered once."""

    def __init__(self, path: str) -> None:
        self.path = path
        frame = cv2.imread(path)
        if frame is None or frame.size == 0:
            raise SourceUnavailable(f"Unable to decode image {path}")
        self._frame: Frame | None = frame

    def read(self) -> Frame | None:
        frame, self._frame = self._frame, None
        return frame

    def close(self) -> None:
        self._frame = None


class ImageFolderSource(FrameSource):
    """Image sequence stored as sorted image files in one folder."""

    def __init__(self, folder: str | Path) -> None:
        self.folder = Path(folder)
        if not self.folder.is_dir():
            raise SourceUnavailable(f"Not a sequence folder: {self.folder}")
        self.paths = sorted(
            p for p in self.folder.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES
        )
        self._index = 0

    def read(self) -> Frame | None:
        if self._index >= len(self.paths):
            return None
        path = self.paths[self._index]
        self._index += 1
        frame = cv2.imread(str(path))
        if frame is None or frame.size == 0:
            raise SourceUnavailable(f"Unable to decode image {path}")
        return frame

    def close(self) -> None:
        self._index = len(self.paths)


class PolledImageSource(FrameSource):
    """Image file rewritten in place by another process (e.g. a camera daemon).

    A new frame is delivered every time the file's modification time changes.
    While the file is unchanged or unreadable the source sleeps, doubling the
    wait from `poll_interval` up to `max_backoff`. The stream ends after
    `idle_timeout` seconds without a new frame (never when it is `None`).
    """

    def __init__(
        self,
        path: str,
        poll_interval: float = 0.05,
        max_backoff: float = 1.0,
        idle_timeout: float | None = 10.0,
        *,
        sleep: Callable[[float], object] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self.path = path
        self.poll_interval = float(poll_interval)
        self.max_backoff = max(float(max_backoff), self.poll_interval)
        self.idle_timeout = idle_timeout
        self._wake = threading.Event()
        # Waiting on the event lets interrupt() cut a backoff short.
        self._sleep = sleep if sleep is not None else self._wake.wait
        self._clock = clock
        self._last_mtime: int | None = None
        self._closed = False

    def _try_read(self) -> Frame | None:
        try:
            mtime = os.stat(self.path).st_mtime_ns
        except OSError:
            return None
        if mtime == self._last_mtime:
            return None
        frame = cv2.imread(self.path)
        if frame is None or frame.size == 0:
            # Writer may be mid-update; retry on the next poll.
            return None
        self._last_mtime = mtime
        return frame

    def read(self) -> Frame | None:
        started = self._clock()
        delay = self.poll_interval
        while not self._closed:
            frame = self._try_read()
            if frame is not None:
                return frame
            if self.idle_timeout is not None and self._clock() - started >= self.idle_timeout:
                logger.info("No new frame in %s for %.1fs, ending stream", self.path, self.idle_timeout)
                return None
            self._sleep(delay)
            delay = min(delay * 2.0, self.max_backoff)
        return None

    def interrupt(self) -> None:
        self._closed = True
        self._wake.set()

    def close(self) -> None:
        self.interrupt()


def list_sequence_folders(root: str | Path) -> list[Path]:
    """Return the sequence sub-folders of a dataset root, sorted by name."""

    root_p = Path(root)
    if not root_p.is_dir():
        raise SourceUnavailable(f"Dataset root not found: {root_p}")
    return sorted(p for p in root_p.iterdir() if p.is_dir())


def make_sources(
    kind: SourceKind | str,
    location: str,
    *,
    poll_interval: float = 0.05,
    max_backoff: float = 1.0,
    idle_timeout: float | None = 10.0,
) -> Iterator[FrameSource]:
    """Yield one `FrameSource` per tracking session for a list-file entry.

    Every kind yields a single session except `videos_folder`, which yields
    one per sequence folder under `location`. Sources are opened lazily.
    """

    kind_e = SourceKind(kind)
    if kind_e is SourceKind.IMAGE:
        yield ImageSource(location)
    elif kind_e is SourceKind.VIDEO:
        yield VideoFileSource(location)
    elif kind_e is SourceKind.WEBCAM:
        yield WebcamSource(int(location) if str(location).isdigit() else 0)
    elif kind_e is SourceKind.VIDEOS_FOLDER:
        for folder in list_sequence_folders(location):
            yield ImageFolderSource(folder)
    else:
        yield PolledImageSource(
            location,
            poll_interval=poll_interval,
            max_backoff=max_backoff,
            idle_timeout=idle_timeout,
        )
