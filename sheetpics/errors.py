"""
Error types for sheetpics.

Request-level errors abort a request and carry the HTTP status the web layer
responds with. Per-image errors only ever drop the image they belong to.
"""


class ProcessingError(Exception):
    """Request-level failure."""
    status_code = 500

    def __init__(self, message: str = "Processing failed"):
        super().__init__(message)
        self.message = message


class NoFileProvided(ProcessingError):
    status_code = 400

    def __init__(self, message: str = "No file uploaded"):
        super().__init__(message)


class UnsupportedFileType(ProcessingError):
    status_code = 400

    def __init__(self, message: str = "Only .xlsx files are supported."):
        super().__init__(message)


class FileTooLarge(ProcessingError):
    status_code = 413


class NoImagesFound(ProcessingError):
    status_code = 422

    def __init__(self, message: str = "No images found in the uploaded file."):
        super().__init__(message)


class ProcessingFailed(ProcessingError):
    status_code = 500


class ImageProcessingError(Exception):
    """A single image could not be converted."""
    pass


class ImageDecodeError(ImageProcessingError):
    """Source bytes are not a decodable image."""
    pass


class ImageTooLargeError(ImageProcessingError):
    """Image still exceeds the size ceiling at the lowest quality."""
    pass
