"""
Exception hierarchy for the adjustment engine and batch coordinator.
"""
from typing import Optional


class AdjusterError(Exception):
    """Base class for every error raised by pdf_image_adjuster."""


class NotInitializedError(AdjusterError):
    """Processing was requested before an original image was loaded."""

    def __init__(self, message: str = "Engine not initialized. Call load_original first."):
        super().__init__(message)


class InvalidBufferError(AdjusterError, ValueError):
    """Pixel buffer length does not match the declared width and height."""

    def __init__(self, length: int, width: int, height: int):
        self.length = length
        self.width = width
        self.height = height
        super().__init__(
            f"Invalid RGBA buffer: got {length} bytes, expected {width}x{height}x4"
        )


class MissingResourceIdentityError(AdjusterError):
    """Replacement attempted on an image that has no resource name."""

    def __init__(self, page_index: int, index_in_page: int):
        self.page_index = page_index
        self.index_in_page = index_in_page
        super().__init__(
            f"Image {index_in_page} on page {page_index} has no resource name and cannot be replaced"
        )


class CollaboratorError(AdjusterError):
    """Wraps any failure raised by the document collaborator."""

    def __init__(self, operation: str, page_index: Optional[int] = None, cause: Optional[BaseException] = None):
        self.operation = operation
        self.page_index = page_index
        self.cause = cause
        where = f" (page {page_index})" if page_index is not None else ""
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Document {operation} failed{where}{detail}")
