import enum
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from PySide6.QtCore import QThread, Signal
from loguru import logger

from pdf_image_adjuster import config
from pdf_image_adjuster.document import DocumentSource, ImageDescriptor, SerializedDocument, serialized
from pdf_image_adjuster.errors import AdjusterError, CollaboratorError, MissingResourceIdentityError
from pdf_image_adjuster.logger import create_logger
from pdf_image_adjuster.pipeline.cache_manager import ImageCacheStore
from pdf_image_adjuster.pipeline.processor import ImageAdjustmentEngine
from pdf_image_adjuster.pipeline.request import AdjustmentConfig
from pdf_image_adjuster.pipeline.state import Completed, ProcessingStateTracker

ProgressCallback = Callable[[int, int], None]
PageCallback = Callable[[int], None]


class ApplyScope(enum.Enum):
    CURRENT_IMAGE = "current_image"
    CURRENT_PAGE = "current_page"
    ALL_PAGES = "all_pages"


@dataclass
class BatchResult:
    processed: int = 0
    total: int = 0
    pages: List[int] = field(default_factory=list)  # 0-based, in completion order
    cancelled: bool = False


class BatchCoordinator:
    """
    Applies one AdjustmentConfig to a single image, one page or the whole
    document, strictly in extraction order.

    For every image: cache original -> process -> replace in document ->
    record config -> progress callback. Cancellation is polled between
    images; an image that has started always finishes. Errors abort the
    batch; replacements already made stay committed.

    cancel() may be called before run() starts (e.g. BatchWorker.stop()
    right after start()); that run then commits nothing. The request is
    consumed when the run ends, use reset_cancel() to drop a stale one.

    An engine passed in stays owned by the caller and is not released.
    """

    def __init__(
        self,
        document: DocumentSource,
        cache_store: Optional[ImageCacheStore] = None,
        engine: Optional[ImageAdjustmentEngine] = None,
        state: Optional[ProcessingStateTracker] = None,
        max_workers: int = config.DEFAULT_MAX_WORKERS,
    ):
        self.document: SerializedDocument = serialized(document)
        self.cache_store = cache_store if cache_store is not None else ImageCacheStore()
        # 只释放自己创建的引擎，外部传入的可能还被预览线程使用
        self.owns_engine = engine is None
        self.engine = engine if engine is not None else ImageAdjustmentEngine(max_workers=max_workers)
        self.state = state if state is not None else ProcessingStateTracker()
        self.cancel_event = threading.Event()

    # ---------------------------------------------------------
    # Public API
    # ---------------------------------------------------------

    def cancel(self):
        """Request cooperative cancellation; checked between images"""
        self.cancel_event.set()

    def reset_cancel(self):
        self.cancel_event.clear()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def run(
        self,
        adjustment: AdjustmentConfig,
        scope: ApplyScope,
        page_index: Optional[int] = None,
        image: Optional[ImageDescriptor] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_page_processed: Optional[PageCallback] = None,
    ) -> BatchResult:
        """
        page_index is required for CURRENT_PAGE, image for CURRENT_IMAGE.
        """
        if scope is ApplyScope.CURRENT_IMAGE and image is None:
            raise ValueError("CURRENT_IMAGE scope needs an image")
        if scope is ApplyScope.CURRENT_PAGE and page_index is None:
            raise ValueError("CURRENT_PAGE scope needs a page_index")

        log = create_logger(f"batch:{scope.value}")

        if isinstance(self.state.state, Completed):
            self.state.reset()
        self.state.prepare()
        log.info("Starting batch")

        result = BatchResult()
        emit_progress = self._progress_emitter(result, on_progress)
        emit_page = self._page_emitter(result, on_page_processed)

        try:
            if scope is ApplyScope.CURRENT_IMAGE:
                self._process_images([image], adjustment, emit_progress, emit_page)
            elif scope is ApplyScope.CURRENT_PAGE:
                images = self._fetch_page(page_index)
                self._process_images(images, adjustment, emit_progress, emit_page)
            else:
                self._process_all_pages(adjustment, result, emit_progress, emit_page)
            cancelled = self.cancelled
        except Exception as e:
            log.error(f"Batch aborted after {result.processed} image(s): {e}")
            self.state.cancel()
            raise
        finally:
            if self.owns_engine:
                self.engine.release()
            # 取消请求只作用于本次运行
            self.cancel_event.clear()

        if cancelled:
            result.cancelled = True
            log.warning(f"Batch cancelled after {result.processed}/{result.total} image(s)")
            self.state.cancel()
        else:
            log.success(f"Batch finished: {result.processed} image(s), {len(result.pages)} page(s)")
            self.state.complete()
        return result

    # ---------------------------------------------------------
    # Scope loops
    # ---------------------------------------------------------

    def _process_images(self, images: Sequence[ImageDescriptor], adjustment: AdjustmentConfig,
                        emit_progress, emit_page):
        """Single image or one page: total is the list length"""
        total = len(images)
        for index, image in enumerate(images):
            if self.cancelled:
                break

            self._process_one(image, adjustment)
            emit_progress(index + 1, total)

            # Page done when the next image belongs to another page, or this is the last one
            is_last = index == total - 1
            if is_last or images[index + 1].page_index != image.page_index:
                emit_page(image.page_index)

    def _process_all_pages(self, adjustment: AdjustmentConfig, result: BatchResult,
                           emit_progress, emit_page):
        """
        Pages are extracted one at a time, right before processing.
        Total is estimated from the first page (first_count * total_pages) and
        is not corrected later.
        A page cut short by cancellation is still signalled if any of its
        images was replaced, so views of that page can refresh.
        """
        total_pages = self._total_pages()
        estimated_total = total_pages
        processed = 0

        for page_index in range(total_pages):
            if self.cancelled:
                break

            images = self._fetch_page(page_index)
            if page_index == 0 and images:
                estimated_total = len(images) * total_pages

            page_done = 0
            for image in images:
                if self.cancelled:
                    break
                self._process_one(image, adjustment)
                processed += 1
                page_done += 1
                emit_progress(processed, estimated_total)

            if page_done:
                emit_page(page_index)

    # ---------------------------------------------------------
    # Per image
    # ---------------------------------------------------------

    def _process_one(self, image: ImageDescriptor, adjustment: AdjustmentConfig):
        if not image.resource_name:
            raise MissingResourceIdentityError(image.page_index, image.index_in_page)
        image_id = image.image_id

        # A later extraction may already be adjusted; the first cached copy is the true original
        self.cache_store.cache_descriptor(image)
        original = self.cache_store.get_original(image_id)

        self.engine.load_original(original, image.width, image.height)
        adjusted = self.engine.process(adjustment)

        try:
            self.document.replace_image(image, adjusted)
        except AdjusterError:
            raise
        except Exception as e:
            raise CollaboratorError("replace_image", image.page_index, e) from e

        self.cache_store.record_config(image_id, adjustment, source=image)
        logger.debug(f"[Batch] Replaced {image_id}")

    def _fetch_page(self, page_index: int) -> List[ImageDescriptor]:
        try:
            return self.document.images_on_page(page_index)
        except AdjusterError:
            raise
        except Exception as e:
            raise CollaboratorError("images_on_page", page_index, e) from e

    def _total_pages(self) -> int:
        try:
            return self.document.total_pages()
        except AdjusterError:
            raise
        except Exception as e:
            raise CollaboratorError("total_pages", None, e) from e

    # ---------------------------------------------------------
    # Notifications
    # ---------------------------------------------------------

    def _progress_emitter(self, result: BatchResult, callback: Optional[ProgressCallback]):
        def emit(current: int, total: int):
            result.processed = current
            result.total = total
            self.state.advance(current, total)
            if callback:
                callback(current, total)
        return emit

    def _page_emitter(self, result: BatchResult, callback: Optional[PageCallback]):
        def emit(page_index: int):
            # At most once per page per run
            if page_index in result.pages:
                return
            result.pages.append(page_index)
            if callback:
                callback(page_index)
        return emit


class BatchWorker(QThread):
    """
    Runs a BatchCoordinator off the interactive thread and re-emits its
    callbacks as Qt signals.
    """
    progress_update = Signal(int, int)  # current, total
    page_processed = Signal(int)  # page index (0-based)
    state_changed = Signal(object)  # ProcessingState
    batch_finished = Signal(object)  # BatchResult
    error_occurred = Signal(str)

    def __init__(
        self,
        coordinator: BatchCoordinator,
        adjustment: AdjustmentConfig,
        scope: ApplyScope,
        page_index: Optional[int] = None,
        image: Optional[ImageDescriptor] = None,
    ):
        super().__init__()
        self.coordinator = coordinator
        self.adjustment = adjustment
        self.scope = scope
        self.page_index = page_index
        self.image = image
        self.result: Optional[BatchResult] = None

    def run(self):
        listener = self.state_changed.emit
        self.coordinator.state.add_listener(listener)
        try:
            self.result = self.coordinator.run(
                self.adjustment,
                self.scope,
                page_index=self.page_index,
                image=self.image,
                on_progress=self.progress_update.emit,
                on_page_processed=self.page_processed.emit,
            )
            self.batch_finished.emit(self.result)
        except Exception as e:
            logger.error(f"[BatchWorker] {e}")
            self.error_occurred.emit(str(e))
        finally:
            self.coordinator.state.remove_listener(listener)

    def stop(self):
        self.coordinator.cancel()
