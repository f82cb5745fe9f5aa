"""S3 object references.

parse_s3_url() turns the accepted URL forms into an ObjectRef:

- s3://bucket/key
- https://bucket.s3.region.amazonaws.com/key (and the legacy bucket.s3-region form)
- https://s3.region.amazonaws.com/bucket/key (path style)

build_resized_key() derives the key a rendition is stored under. The derived
key is the cache index, so it must stay deterministic.
"""

import os
import re
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

from resizer_py.errors import InvalidUrl

S3_SCHEME = "s3://"

# Non-greedy so dotted bucket names stop at the first ".s3." / ".s3-"
_VIRTUAL_HOST_RE = re.compile(r"^(?P<bucket>[^/]+?)\.s3[.-]")
_PATH_STYLE_HOST_RE = re.compile(r"^s3[.-]")


@dataclass(frozen=True)
class ObjectRef:
    bucket: str
    key: str

    @property
    def url(self) -> str:
        return f"{S3_SCHEME}{self.bucket}/{self.key}"

    def with_key(self, key: str) -> "ObjectRef":
        return ObjectRef(bucket=self.bucket, key=key)


def _make_ref(url: str, bucket: str, key: str) -> ObjectRef:
    key = key.lstrip("/")
    if not bucket:
        raise InvalidUrl(url, "missing bucket name")
    if not key:
        raise InvalidUrl(url, "missing object key")
    return ObjectRef(bucket=bucket, key=key)


def _parse_s3_scheme(url: str) -> ObjectRef:
    # Taken literally: '?' and '#' are valid key characters in s3:// URIs
    bucket, _, key = url[len(S3_SCHEME):].partition("/")
    return _make_ref(url, bucket, key)


def _parse_https(url: str) -> ObjectRef:
    parts = urlsplit(url)
    if parts.scheme not in ("https", "http"):
        raise InvalidUrl(url, "URL must use s3://, https:// or http:// scheme")

    host = (parts.hostname or "").lower()
    if not host:
        raise InvalidUrl(url, "missing host")
    path = unquote(parts.path)

    match = _VIRTUAL_HOST_RE.match(host)
    if match:
        return _make_ref(url, match.group("bucket"), path)

    if _PATH_STYLE_HOST_RE.match(host):
        bucket, _, key = path.lstrip("/").partition("/")
        return _make_ref(url, bucket, key)

    raise InvalidUrl(url, "host is not an S3 endpoint")


def parse_s3_url(url: str) -> ObjectRef:
    """Parse an S3 URL in any accepted form. Raises InvalidUrl."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrl(str(url), "URL is empty")
    url = url.strip()
    if url.lower().startswith(S3_SCHEME):
        return _parse_s3_scheme(url)
    return _parse_https(url)


def build_resized_key(key: str, width: int, height: int) -> str:
    """Derive the rendition key: a/b/photo.jpg -> a/b/photo_800x600.jpg.

    The mode is not part of the key; whatever is stored there is reused.
    """
    directory, sep, filename = key.rpartition("/")
    stem, ext = os.path.splitext(filename)
    name = f"{stem}_{width}x{height}{ext}"

    if sep:
        return f"{directory}/{name}"
    return name
