import re
from typing import Any
from urllib.parse import urlsplit

_LOCALHOST_PREFIX = re.compile(r"^https?://localhost(?::\d+)?", re.IGNORECASE)


def to_relative_upload_url(url: str | None) -> str | None:
    """Rewrite a localhost upload URL to a host-relative path.

    Photo URLs are generated against whatever host served the upload; in
    development that is ``http://localhost:<port>``, which the browser
    client cannot reach. Other hosts are left untouched.

    Args:
        url: Absolute or relative photo URL.

    Returns:
        str | None: The path (with query and fragment) for localhost URLs,
            the input otherwise.
    """
    if not url:
        return url

    try:
        parts = urlsplit(url)
    except ValueError:
        parts = None

    if parts is not None and parts.hostname == "localhost":
        path = parts.path
        if parts.query:
            path += f"?{parts.query}"
        if parts.fragment:
            path += f"#{parts.fragment}"
        return path or "/"

    return _LOCALHOST_PREFIX.sub("", url) or "/"


def normalize_photos(photos: Any) -> list[dict[str, Any]]:
    """Normalize a photo list to ``[{"url": <relative url>}, ...]``."""
    if not isinstance(photos, list):
        return []
    return [
        {**photo, "url": to_relative_upload_url(photo.get("url"))}
        for photo in photos
        if isinstance(photo, dict)
    ]


def normalize_entity(entity: Any) -> Any:
    """Normalize the ``photos`` of one entity dict, or of each dict in a list."""
    if isinstance(entity, list):
        return [normalize_entity(item) for item in entity]
    if not isinstance(entity, dict):
        return entity
    return {**entity, "photos": normalize_photos(entity.get("photos"))}
