"""
Resize pipeline errors.

Every error carries a preset HTTP status so the service middleware can turn it
into an ``{"error": ...}`` response without a lookup table at the call site.
"""


class ResizeError(Exception):
    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(ResizeError):
    """Request body is malformed (not JSON, missing fields, unknown mode)."""

    status = 400


class InvalidUrl(ResizeError):
    status = 400

    def __init__(self, url: str, reason: str):
        super().__init__(f"Invalid S3 URL {url!r}: {reason}")
        self.url = url
        self.reason = reason


class InvalidDimensions(ResizeError):
    status = 400


class NotFound(ResizeError):
    status = 404


class StoreError(ResizeError):
    """Object store call failed for a reason other than a missing object."""

    status = 502


class DecodeError(ResizeError):
    status = 422


class EncodeError(ResizeError):
    status = 422
