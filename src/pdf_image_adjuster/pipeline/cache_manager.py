import threading
from typing import Dict, List, Optional

from loguru import logger

from pdf_image_adjuster.document import ImageDescriptor
from pdf_image_adjuster.pipeline.request import AdjustmentConfig
from pdf_image_adjuster.utils import validate_buffer


class CachedImage:
    """
    Container for one image's untouched original pixels.
    ``original`` is an immutable bytes copy and is never replaced once set.
    """
    def __init__(self, image_id: str, original: bytes, width: int, height: int,
                 last_config: Optional[AdjustmentConfig] = None):
        self.image_id = image_id
        self.original = original
        self.width = width
        self.height = height
        self.last_config = last_config

        # Calculate approximate size in MB
        self.size_mb = len(original) / (1024 * 1024)


class ImageCacheStore:
    """
    Thread-safe keyed store: image id -> original pixels + last applied config.
    First writer wins; entries are only removed by evict()/clear().
    """
    def __init__(self):
        self.cache: Dict[str, CachedImage] = {}
        self.lock = threading.Lock()
        self.current_memory_mb = 0.0

    def cache_original_if_absent(self, image_id: str, data: bytes, width: int, height: int) -> bool:
        """Returns True if a new entry was created"""
        validate_buffer(data, width, height)
        if image_id in self.cache:
            return False

        # Clone outside the lock so different ids can copy concurrently
        original = bytes(data)

        with self.lock:
            if image_id in self.cache:
                return False
            item = CachedImage(image_id, original, width, height)
            self.cache[image_id] = item
            self.current_memory_mb += item.size_mb

        logger.debug(f"[Cache] Added {image_id}. Items: {len(self.cache)}, Mem: {self.current_memory_mb:.1f}MB")
        return True

    def cache_descriptor(self, descriptor: ImageDescriptor) -> bool:
        return self.cache_original_if_absent(
            descriptor.image_id, descriptor.pixels, descriptor.width, descriptor.height
        )

    def get_entry(self, image_id: str) -> Optional[CachedImage]:
        with self.lock:
            return self.cache.get(image_id)

    def get_original(self, image_id: str) -> Optional[bytes]:
        item = self.get_entry(image_id)
        return item.original if item else None

    def get_last_config(self, image_id: str) -> Optional[AdjustmentConfig]:
        item = self.get_entry(image_id)
        return item.last_config if item else None

    def is_cached(self, image_id: str) -> bool:
        with self.lock:
            return image_id in self.cache

    def record_config(self, image_id: str, config: AdjustmentConfig,
                      source: Optional[ImageDescriptor] = None) -> None:
        """
        Upsert the last applied config (bookkeeping / UI prefill only).
        If the id is not cached yet, ``source`` is cached first.
        """
        if not self.is_cached(image_id):
            if source is None:
                raise KeyError(f"No cached original for {image_id} and no source image given")
            self.cache_original_if_absent(image_id, source.pixels, source.width, source.height)

        with self.lock:
            self.cache[image_id].last_config = config

    def evict(self, image_id: str) -> bool:
        with self.lock:
            item = self.cache.pop(image_id, None)
            if item is None:
                return False
            self.current_memory_mb -= item.size_mb
        logger.debug(f"[Cache] Evicted {image_id}. Mem: {self.current_memory_mb:.1f}MB")
        return True

    def clear(self):
        with self.lock:
            self.cache.clear()
            self.current_memory_mb = 0.0
        logger.debug("[Cache] Cleared")

    def ids(self) -> List[str]:
        with self.lock:
            return list(self.cache)

    def __len__(self) -> int:
        with self.lock:
            return len(self.cache)

    def __contains__(self, image_id: str) -> bool:
        return self.is_cached(image_id)


