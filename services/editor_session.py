from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import logging
import os
import threading
import uuid

from dotenv import load_dotenv

from models.errors import SegmentationFailure
from models.image import Image
from models.image_adjustments import ImageAdjustments
from pipeline.composite_renderer import render_composite
from services.image_service import ImageService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

Segmenter = Callable[[bytes], bytes]
Renderer = Callable[[Image, Image, ImageAdjustments], Image]
_Snapshot = Tuple[Image, Image, ImageAdjustments]


@dataclass(frozen=True)
class RenderResult:
    """
    Outcome of one recomputation request.
    *superseded* is True when a newer request was issued before this one
    finished; its image was then never shown.
    """
    revision: int
    adjustments: ImageAdjustments
    image: Optional[Image]
    superseded: bool = False


def _resolved(value) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


class EditorSession:
    """
    State for one user: original photo, its cutout, current adjustments and
    the derived composite.

    *   Uploads and recomputations run on a private thread pool and return
        Futures, so callers (sliders) never block on them.
    *   Every recomputation gets a revision number; only the newest revision
        may replace the composite, whatever order the renders finish in.
    *   All state changes go through one lock. ``on_composite`` runs under a
        separate display lock, so callbacks never overlap and never go back
        to an older revision. A callback must not block on a render future
        of the same session.
    """

    def __init__(
        self,
        segmenter: Segmenter,
        *,
        renderer: Renderer = render_composite,
        image_service: ImageService | None = None,
        segmentation_timeout: float | None = None,
        max_workers: int | None = None,
        on_composite: Callable[[Image, int], None] | None = None,
        on_failure: Callable[[Exception], None] | None = None,
        session_id: str | None = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self._segmenter = segmenter
        self._renderer = renderer
        self.image_service = image_service or ImageService()
        if segmentation_timeout is None:
            segmentation_timeout = float(os.getenv("SEGMENTATION_TIMEOUT_S", "60"))
        self.segmentation_timeout = segmentation_timeout
        self.on_composite = on_composite
        self.on_failure = on_failure

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or int(os.getenv("EDITOR_MAX_WORKERS", "4")),
            thread_name_prefix=f"editor-{self.session_id[:8]}",
        )
        self._lock = threading.Lock()
        # serialises on_composite calls; never taken while holding _lock
        self._display_lock = threading.Lock()
        self._original: Image | None = None
        self._cutout: Image | None = None
        self._adjustments = ImageAdjustments()
        self._composite: Image | None = None
        self._revision = 0              # newest revision handed out
        self._shown_revision = 0        # newest revision passed to on_composite
        self._upload_token = 0          # newest upload attempt
        self._committed_upload = 0      # newest upload that reached the screen
        self._in_flight = 0

    # ─── Read-only views ───────────────────────────────────────────
    @property
    def original(self) -> Image | None:
        return self._original

    @property
    def cutout(self) -> Image | None:
        return self._cutout

    @property
    def adjustments(self) -> ImageAdjustments:
        return self._adjustments

    @property
    def composite(self) -> Image | None:
        return self._composite

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def processing(self) -> bool:
        """True while an upload or a render is still running."""
        return self._in_flight > 0

    # ─── Upload ────────────────────────────────────────────────────
    def upload(self, image_bytes: bytes) -> "Future[RenderResult]":
        """
        Start a new photo: decode it now (bad input fails immediately),
        then segment + render in the background.

        The future fails with SegmentationFailure when the collaborator
        errors, times out or returns something undecodable; the session then
        keeps whatever it showed before.
        """
        original = self.image_service.decode(image_bytes)
        self.image_service.validate(original)
        with self._lock:
            self._upload_token += 1
            token = self._upload_token
            self._in_flight += 1
        logger.info(f"[{self.session_id}] upload #{token}: {original.width}x{original.height}")
        return self._executor.submit(self._run_upload, bytes(image_bytes), original, token)

    def _run_upload(self, image_bytes: bytes, original: Image, token: int) -> RenderResult:
        try:
            try:
                cutout = self._segment(image_bytes)
                # a wrong-sized cutout is a collaborator contract bug, not recoverable
                self.image_service.ensure_same_dimensions(original, cutout)
            except Exception as exc:
                logger.error(f"[{self.session_id}] upload #{token} failed: {exc}")
                self._notify_failure(exc)
                raise

            with self._lock:
                if token < self._committed_upload:
                    logger.info(f"[{self.session_id}] upload #{token} superseded by #{self._committed_upload}")
                    return RenderResult(self._revision, self._adjustments, None, superseded=True)
                self._original = original
                self._cutout = cutout
                self._committed_upload = token
                self._adjustments = ImageAdjustments()
                revision, snapshot = self._next_revision_locked()

            return self._render(revision, snapshot)
        finally:
            with self._lock:
                self._in_flight -= 1

    def _call_segmenter(self, image_bytes: bytes) -> bytes:
        # own daemon thread per call: a hung collaborator must not hold a pool worker
        future: Future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._segmenter(image_bytes))
            except Exception as exc:
                future.set_exception(exc)

        threading.Thread(target=run, name=f"segment-{self.session_id[:8]}", daemon=True).start()
        return future.result(timeout=self.segmentation_timeout)

    def _segment(self, image_bytes: bytes) -> Image:
        try:
            cutout_bytes = self._call_segmenter(image_bytes)
        except FutureTimeoutError as exc:
            raise SegmentationFailure(
                f"Segmentation did not finish within {self.segmentation_timeout}s"
            ) from exc
        except Exception as exc:
            raise SegmentationFailure(f"Segmentation failed: {exc}") from exc

        if not isinstance(cutout_bytes, (bytes, bytearray)) or not cutout_bytes:
            raise SegmentationFailure("Segmentation returned no image data")
        try:
            return self.image_service.decode(bytes(cutout_bytes))
        except ValueError as exc:
            raise SegmentationFailure(f"Segmentation returned a malformed image: {exc}") from exc

    # ─── Adjustments ───────────────────────────────────────────────
    def set_adjustments(self, adjustments: ImageAdjustments) -> "Future[RenderResult | None]":
        """Replace all four parameters. Resolves to None while there is no cutout yet."""
        adjustments = adjustments.validate()
        with self._lock:
            return self._apply_adjustments_locked(adjustments)

    def update_adjustments(self, **changes: float) -> "Future[RenderResult | None]":
        """Change some fields, keep the rest (one slider moved)."""
        with self._lock:
            adjustments = ImageAdjustments.from_mapping(changes, base=self._adjustments)
            return self._apply_adjustments_locked(adjustments)

    def _apply_adjustments_locked(self, adjustments: ImageAdjustments) -> Future:
        self._adjustments = adjustments
        if self._cutout is None:
            return _resolved(None)
        revision, snapshot = self._next_revision_locked()
        self._in_flight += 1
        return self._executor.submit(self._render_counted, revision, snapshot)

    # ─── Rendering ─────────────────────────────────────────────────
    def _next_revision_locked(self) -> tuple[int, _Snapshot]:
        self._revision += 1
        return self._revision, (self._original, self._cutout, self._adjustments)

    def _render_counted(self, revision: int, snapshot: _Snapshot) -> RenderResult:
        try:
            return self._render(revision, snapshot)
        finally:
            with self._lock:
                self._in_flight -= 1

    def _render(self, revision: int, snapshot: _Snapshot) -> RenderResult:
        original, cutout, adjustments = snapshot
        try:
            image = self._renderer(original, cutout, adjustments)
        except Exception as exc:
            logger.error(f"[{self.session_id}] render r{revision} failed: {exc}")
            self._notify_failure(exc)
            raise

        with self._lock:
            superseded = revision != self._revision
            if not superseded:
                self._composite = image

        if not superseded:
            superseded = not self._publish(image, revision)
        if superseded:
            logger.debug(f"[{self.session_id}] dropping stale render r{revision}")
        return RenderResult(revision, adjustments, image, superseded=superseded)

    def _publish(self, image: Image, revision: int) -> bool:
        # a newer revision may have been issued or shown since the commit above
        with self._display_lock:
            if revision < self._revision or revision <= self._shown_revision:
                return False
            self._shown_revision = revision
            logger.debug(f"[{self.session_id}] composite r{revision} ready")
            if self.on_composite is not None:
                self.on_composite(image, revision)
            return True

    def _notify_failure(self, exc: Exception) -> None:
        if self.on_failure is not None:
            self.on_failure(exc)

    # ─── Export / lifecycle ────────────────────────────────────────
    def export_png(self) -> bytes:
        composite = self._composite
        if composite is None:
            raise ValueError("No composite to export yet")
        return self.image_service.encode_png(composite)

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "EditorSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
