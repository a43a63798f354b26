import threading
import time
from typing import Optional, Tuple

import numpy as np
from PySide6.QtCore import QThread, Signal
from loguru import logger

from pdf_image_adjuster import config
from pdf_image_adjuster.curves import generate_luts
from pdf_image_adjuster.errors import NotInitializedError
from pdf_image_adjuster.pipeline.request import AdjustmentConfig, CurveConfig, ProcessRequest
from pdf_image_adjuster.utils import PixelsLike, apply_config_with_luts, validate_buffer


class ImageAdjustmentEngine:
    """
    Holds one untouched original and replays adjustments against it.
    Every process() call starts from the original, so there is no drift
    between repeated adjustments.
    """

    def __init__(self, max_workers: int = config.DEFAULT_MAX_WORKERS):
        self.lock = threading.Lock()
        self.max_workers = max_workers

        # Current State
        self.original: Optional[bytes] = None
        self.width = 0
        self.height = 0

        # LUT Cache
        self.cached_curves: Optional[CurveConfig] = None
        self.cached_luts: Optional[Tuple[np.ndarray, ...]] = None

    @property
    def is_initialized(self) -> bool:
        return self.original is not None

    def load_original(self, pixels: PixelsLike, width: int, height: int):
        """Clone and cache the original. Replaces anything loaded before."""
        validate_buffer(pixels, width, height)
        original = bytes(pixels)
        with self.lock:
            self.original = original
            self.width = width
            self.height = height
        logger.debug(f"[Engine] Loaded original {width}x{height}")

    def release(self):
        with self.lock:
            self.original = None
            self.width = 0
            self.height = 0

    def luts_for(self, curves: CurveConfig) -> Tuple[np.ndarray, ...]:
        with self.lock:
            if curves == self.cached_curves and self.cached_luts is not None:
                return self.cached_luts

        logger.debug("[Engine] Generating curve LUTs")
        luts = generate_luts(curves)
        with self.lock:
            self.cached_curves = curves
            self.cached_luts = luts
        return luts

    def process(self, adjustment: AdjustmentConfig) -> bytes:
        """Apply adjustment to a copy of the cached original"""
        with self.lock:
            original = self.original
            width, height = self.width, self.height
        if original is None:
            raise NotInitializedError()

        return self._apply(original, width, height, adjustment)

    def process_image(self, pixels: PixelsLike, width: int, height: int, adjustment: AdjustmentConfig) -> bytes:
        """Apply adjustment to caller-supplied pixels without touching the cached original"""
        validate_buffer(pixels, width, height)
        return self._apply(pixels, width, height, adjustment)

    def _apply(self, pixels: PixelsLike, width: int, height: int, adjustment: AdjustmentConfig) -> bytes:
        luts = self.luts_for(adjustment.curves)
        # apply_config_with_luts always writes into a fresh copy
        return apply_config_with_luts(pixels, width, height, adjustment.hsl, luts, max_workers=self.max_workers)


class ImageProcessor(QThread):
    """
    Interactive preview worker. Uses request queue pattern: only the latest
    pending request is kept, older ones are dropped.
    """
    result_ready = Signal(object, int, int, int)  # pixels, width, height, request_id
    load_complete = Signal(int)  # request_id
    error_occurred = Signal(str)

    def __init__(self, engine: Optional[ImageAdjustmentEngine] = None, autostart: bool = True):
        super().__init__()
        self.lock = threading.Lock()
        self.engine = engine or ImageAdjustmentEngine()
        self.autostart = autostart

        # Request management
        self.pending_request: Optional[ProcessRequest] = None
        self.current_request_id = 0

    def _submit(self, make_request) -> int:
        with self.lock:
            self.current_request_id += 1
            request_id = self.current_request_id
            self.pending_request = make_request(request_id, self.pending_request)

        if self.autostart and not self.isRunning():
            self.start()
        return request_id

    def load_image(self, pixels: PixelsLike, width: int, height: int) -> int:
        """Load a new original - creates a special load request"""
        return self._submit(lambda rid, _: ProcessRequest(rid, pixels=bytes(pixels), width=width, height=height))

    def update_preview(self, adjustment: AdjustmentConfig) -> int:
        """Process cached original with adjustment"""
        def make_request(rid, previous: Optional[ProcessRequest]) -> ProcessRequest:
            if previous is not None and previous.is_load:
                # Keep a load that has not run yet, otherwise the preview has nothing to work on
                return ProcessRequest(rid, config=adjustment, pixels=previous.pixels,
                                      width=previous.width, height=previous.height)
            return ProcessRequest(rid, config=adjustment)
        return self._submit(make_request)

    def process_pending(self) -> bool:
        """Handle one pending request. Returns False if there was none."""
        with self.lock:
            request = self.pending_request
            self.pending_request = None

        if request is None:
            return False

        try:
            if request.is_load:
                self.engine.load_original(request.pixels, request.width, request.height)
                self.load_complete.emit(request.request_id)
            if request.config is not None:
                result = self.engine.process(request.config)
                self.result_ready.emit(result, self.engine.width, self.engine.height, request.request_id)
        except Exception as e:
            logger.error(f"[Worker] Error handling request {request.request_id}: {e}")
            self.error_occurred.emit(str(e))
        return True

    def run(self):
        """Keep thread alive to process requests without restart overhead"""
        idle_count = 0

        while True:
            if self.process_pending():
                idle_count = 0
                continue

            idle_count += 1
            if idle_count >= config.PREVIEW_IDLE_CHECKS:
                break  # Exit after idle timeout
            time.sleep(config.PREVIEW_IDLE_SLEEP)

    def release(self):
        with self.lock:
            self.pending_request = None
        self.engine.release()
