"""Shared fixtures: reproducible RGBA buffers and an in-memory document."""

import numpy as np
import pytest

from pdf_image_adjuster.document import ImageDescriptor


def make_pixels(width, height, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=width * height * 4, dtype=np.uint8).tobytes()


class FakeDocument:
    """In-memory document collaborator recording every call."""

    def __init__(self, images_per_page, width=4, height=3, named=True):
        self.pages = []
        for page_index, count in enumerate(images_per_page):
            page = []
            for index in range(count):
                page.append(ImageDescriptor(
                    page_index=page_index,
                    index_in_page=index,
                    width=width,
                    height=height,
                    pixels=make_pixels(width, height, seed=page_index * 100 + index),
                    resource_name=f"Im{page_index}_{index}" if named else None,
                ))
            self.pages.append(page)
        self.replaced = []
        self.extracted_pages = []
        self.fail_replace_on = None

    def total_pages(self):
        return len(self.pages)

    def images_on_page(self, page_index):
        self.extracted_pages.append(page_index)
        return list(self.pages[page_index])

    def replace_image(self, descriptor, pixels):
        if self.fail_replace_on is not None and len(self.replaced) == self.fail_replace_on:
            raise IOError("resource vanished")
        self.replaced.append((descriptor.image_id, pixels))
        # The document now holds the adjusted pixels under the same name
        page = self.pages[descriptor.page_index]
        page[descriptor.index_in_page] = ImageDescriptor(
            descriptor.page_index, descriptor.index_in_page,
            descriptor.width, descriptor.height, pixels, descriptor.resource_name,
        )


@pytest.fixture
def rgba_buffer():
    return make_pixels(16, 8, seed=42), 16, 8


@pytest.fixture
def qapp():
    from PySide6.QtCore import QCoreApplication
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
