"""Shared image-resize core: S3 URL parsing, geometry, Pillow transforms, S3 gateway."""
