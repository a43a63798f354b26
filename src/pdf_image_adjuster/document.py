"""
Boundary with the host document library.

The core never parses or writes documents itself. It talks to a
``DocumentSource`` and wraps it in ``SerializedDocument`` so that extraction,
replacement and saving never run concurrently against the same handle.
"""
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Protocol, Sequence, runtime_checkable


def make_image_id(page_index: int, index_in_page: int, resource_name: Optional[str] = None) -> str:
    """Stable join key across repeated extraction passes of one document."""
    if resource_name:
        return resource_name
    return f"page_{page_index}_img_{index_in_page}"


@dataclass(frozen=True)
class ImageDescriptor:
    """One raster image found on a page. ``pixels`` is RGBA8, unpadded."""
    page_index: int
    index_in_page: int
    width: int
    height: int
    pixels: bytes
    resource_name: Optional[str] = None

    @property
    def image_id(self) -> str:
        return make_image_id(self.page_index, self.index_in_page, self.resource_name)


@runtime_checkable
class DocumentSource(Protocol):
    """Operations the host document library must provide."""

    def total_pages(self) -> int:
        ...

    def images_on_page(self, page_index: int) -> Sequence[ImageDescriptor]:
        ...

    def replace_image(self, descriptor: ImageDescriptor, pixels: bytes) -> None:
        ...


class SerializedDocument:
    """
    Runs every call on the wrapped document inside one exclusive section.
    The document library is not assumed to support concurrent mutation.
    """

    def __init__(self, source: DocumentSource):
        self.source = source
        self.lock = threading.RLock()

    @contextmanager
    def exclusive(self) -> Iterator[DocumentSource]:
        """For host operations outside the protocol (render, save)."""
        with self.lock:
            yield self.source

    def total_pages(self) -> int:
        with self.lock:
            return self.source.total_pages()

    def images_on_page(self, page_index: int) -> List[ImageDescriptor]:
        with self.lock:
            return list(self.source.images_on_page(page_index))

    def replace_image(self, descriptor: ImageDescriptor, pixels: bytes) -> None:
        with self.lock:
            self.source.replace_image(descriptor, pixels)


def serialized(document: DocumentSource) -> SerializedDocument:
    if isinstance(document, SerializedDocument):
        return document
    return SerializedDocument(document)
