"""
Folder batch: watermark every image in a folder into another folder.

Files are handled one at a time. A bad file is logged and recorded in the
result, it never stops the batch. Pause and cancel are honoured between
files through a ``BatchControl``.
"""

import enum
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from tilemark.errors import BatchBusyError, FolderAccessError, SettingsError, WatermarkError
from tilemark.imaging import DEFAULT_QUALITY, watermark_bytes
from tilemark.settings import WatermarkSettings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".gif", ".tiff", ".webp"}


class BatchState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProgressEvent:
    processed: int  # files handled so far, written or failed
    total: int
    filename: str
    ok: bool

    @property
    def fraction(self) -> float:
        return self.processed / self.total if self.total else 1.0


@dataclass
class BatchResult:
    success: bool
    processed: int = 0
    total: int = 0
    errors: List[Tuple[str, str]] = field(default_factory=list)
    cancelled: bool = False
    message: str = ""

    @property
    def failed(self) -> int:
        return len(self.errors)


ProgressCallback = Callable[[ProgressEvent], None]


class BatchControl:
    """Cooperative pause/resume/cancel token, checked between files."""

    def __init__(self):
        self._running = threading.Event()
        self._running.set()
        self._cancelled = threading.Event()

    @property
    def paused(self) -> bool:
        return not self._running.is_set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._running.set()

    def cancel(self) -> None:
        self._cancelled.set()
        # Wake a paused batch so it can see the cancellation.
        self._running.set()

    def checkpoint(self) -> bool:
        """Block while paused; return False once cancelled."""
        self._running.wait()
        return not self._cancelled.is_set()


def list_images(folder: Path) -> List[Path]:
    """Image files directly inside ``folder``, sorted by name."""
    folder = Path(folder)
    if not folder.is_dir():
        raise FolderAccessError(f"Input folder not found: {folder}")
    try:
        candidates = list(folder.iterdir())
    except OSError as exc:
        raise FolderAccessError(f"Cannot read input folder {folder}: {exc}") from exc
    paths = [p for p in candidates if p.suffix.lower() in IMAGE_EXTENSIONS and p.is_file()]
    return sorted(paths, key=lambda p: (p.name.lower(), p.name))


def count_images(folder: Path) -> int:
    try:
        return len(list_images(folder))
    except FolderAccessError:
        return 0


def first_image(folder: Path) -> Optional[Path]:
    try:
        pages = list_images(folder)
    except FolderAccessError:
        return None
    return pages[0] if pages else None


def process_file(
    image_path: Path,
    output_dir: Path,
    settings: WatermarkSettings,
    quality: int = DEFAULT_QUALITY,
) -> Path:
    out_path = Path(output_dir) / image_path.name
    data = image_path.read_bytes()
    out_path.write_bytes(watermark_bytes(data, settings, filename=image_path.name, quality=quality))
    return out_path


def process_folder(
    input_dir: Path,
    output_dir: Path,
    settings: WatermarkSettings,
    progress: Optional[ProgressCallback] = None,
    control: Optional[BatchControl] = None,
    quality: int = DEFAULT_QUALITY,
) -> BatchResult:
    settings.require_text()
    input_dir, output_dir = Path(input_dir), Path(output_dir)
    if input_dir.resolve() == output_dir.resolve():
        raise SettingsError("Input and output folders must differ")

    try:
        pages = list_images(input_dir)
    except FolderAccessError as exc:
        logger.error("%s", exc)
        return BatchResult(success=False, message=str(exc))

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Cannot create output folder %s: %s", output_dir, exc)
        return BatchResult(success=False, total=len(pages), message=f"Cannot create output folder: {exc}")

    result = BatchResult(success=True, total=len(pages))
    logger.info("Watermarking %d image(s) from %s into %s", len(pages), input_dir, output_dir)

    for index, page_path in enumerate(pages, start=1):
        if control is not None and not control.checkpoint():
            result.cancelled = True
            logger.info("Batch cancelled after %d of %d file(s)", index - 1, len(pages))
            break

        ok = True
        try:
            out_path = process_file(page_path, output_dir, settings, quality=quality)
            result.processed += 1
            logger.info("[wrote] %s", out_path)
        except (WatermarkError, OSError) as exc:
            ok = False
            result.errors.append((page_path.name, str(exc)))
            logger.error("[failed] %s: %s", page_path.name, exc)
        except Exception as exc:
            ok = False
            result.errors.append((page_path.name, f"{type(exc).__name__}: {exc}"))
            logger.exception("[failed] %s: unexpected error", page_path.name)

        if progress is not None:
            progress(ProgressEvent(processed=index, total=len(pages), filename=page_path.name, ok=ok))

    logger.info(
        "Batch finished: %d/%d written, %d failed%s",
        result.processed, result.total, result.failed, " (cancelled)" if result.cancelled else "",
    )
    return result


class BatchRunner:
    """Runs one ``process_folder`` at a time on a background thread."""

    def __init__(
        self,
        on_progress: Optional[ProgressCallback] = None,
        on_done: Optional[Callable[[BatchResult], None]] = None,
    ):
        self.on_progress = on_progress
        self.on_done = on_done
        self.control = BatchControl()
        self.state = BatchState.IDLE
        self.result: Optional[BatchResult] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self.state is BatchState.RUNNING

    def start(
        self,
        input_dir: Path,
        output_dir: Path,
        settings: WatermarkSettings,
        quality: int = DEFAULT_QUALITY,
    ) -> None:
        settings.require_text()
        with self._lock:
            if self.running:
                raise BatchBusyError("A batch is already running")
            self.state = BatchState.RUNNING
            self.result = None
            self.control = BatchControl()

        def worker():
            try:
                result = process_folder(
                    input_dir, output_dir, settings,
                    progress=self._progress, control=self.control, quality=quality,
                )
            except WatermarkError as exc:
                logger.error("Batch failed: %s", exc)
                result = BatchResult(success=False, message=str(exc))
            except Exception as exc:
                logger.exception("Batch crashed")
                result = BatchResult(success=False, message=str(exc))
            self._finish(result)

        self._thread = threading.Thread(target=worker, daemon=True)
        self._thread.start()

    def _progress(self, event: ProgressEvent) -> None:
        callback = self.on_progress
        if callback is not None:
            callback(event)

    def _finish(self, result: BatchResult) -> None:
        with self._lock:
            self.result = result
            if not result.success:
                self.state = BatchState.FAILED
            elif result.cancelled:
                self.state = BatchState.CANCELLED
            else:
                self.state = BatchState.COMPLETED
        callback = self.on_done
        if callback is not None:
            callback(result)

    def pause(self) -> None:
        self.control.pause()

    def resume(self) -> None:
        self.control.resume()

    def cancel(self) -> None:
        self.control.cancel()

    def join(self, timeout: Optional[float] = None) -> Optional[BatchResult]:
        if self._thread is not None:
            self._thread.join(timeout)
        return self.result

    def close(self, timeout: Optional[float] = None) -> Optional[BatchResult]:
        """Cancel any running batch and detach the callbacks before waiting for it.

        Used when the window goes away: the worker must not call back into a
        destroyed UI.
        """
        self.on_progress = None
        self.on_done = None
        self.control.cancel()
        return self.join(timeout)
