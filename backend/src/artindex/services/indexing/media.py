"""Media classification and URL helpers used by the normalizer.

Pure functions only: no I/O, no database access.
"""

from enum import Enum
from urllib.parse import urlparse

IPFS_GATEWAY = "https://ipfs.io"

# Placeholder thumbnail hic et nunc minted for every token without its own preview
PLACEHOLDER_THUMBNAIL_CIDS = frozenset({"QmNrhZHUaEqxhyLfqoq1mtHSipkWHeT31LNHb1QEbDHgnc"})

MIME_BY_EXTENSION = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "bmp": "image/bmp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "avif": "image/avif",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "m4v": "video/x-m4v",
    "ogv": "video/ogg",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "glb": "model/gltf-binary",
    "gltf": "model/gltf+json",
    "html": "text/html",
    "htm": "text/html",
    "js": "application/javascript",
    "json": "application/json",
    "pdf": "application/pdf",
    "zip": "application/zip",
    "wasm": "application/wasm",
}

ANIMATED_IMAGE_MIMES = frozenset({"image/gif"})
INTERACTIVE_MIMES = frozenset({"text/html"})
INTERACTIVE_KEYWORDS = ("generator", "interactive")

GENERATIVE_KEYWORDS = (
    "art blocks",
    "artblocks",
    "fxhash",
    "async art",
    "bright moments",
    "generative",
    "algorithmic",
    "procedural",
    "qql",
    "fidenza",
)

# fxhash issuer and gentk contracts
GENERATIVE_CONTRACTS = frozenset(
    {
        "KT1U6EHmNxJTkvaWJ4ThczG4FSDaHC21ssvi",
        "KT1KEa8z6vWXDJrVqtMrAeDVzsvxat3kHaCE",
        "KT1AaaBSo5AE6Eo8fpEN5xhCD4w3kHStafxk",
        "KT1XCoGnfupWk7Sp8536EfrxcP73LmT68Nyr",
    }
)


class MediaKind(str, Enum):
    IMAGE = "image"
    ANIMATION = "animation"
    INTERACTIVE = "interactive"


def resolve_ipfs_url(url: str | None) -> str | None:
    """Rewrite ipfs:// URIs to an HTTP gateway URL. Other URLs pass through."""
    if not url:
        return None
    url = url.strip()
    if not url.startswith("ipfs://"):
        return url
    path = url[len("ipfs://") :]
    if path.startswith("ipfs/"):
        path = path[len("ipfs/") :]
    return f"{IPFS_GATEWAY}/ipfs/{path}"


def mime_from_url(url: str | None) -> str | None:
    """Guess a MIME type from the URL's file extension.

    Returns:
        MIME type string, or None when the path has no known extension
    """
    if not url:
        return None
    path = urlparse(url).path
    last_segment = path.rsplit("/", 1)[-1]
    if "." not in last_segment:
        return None
    extension = last_segment.rsplit(".", 1)[-1].lower()
    return MIME_BY_EXTENSION.get(extension)


def classify_media(url: str | None, mime: str | None = None) -> MediaKind:
    """Decide whether a media URL is a still image, an animation or interactive.

    The declared MIME type wins. Without one, the type is guessed from the
    file extension. Path keywords are consulted only when neither is known.
    """
    normalized = (mime or "").split(";", 1)[0].strip().lower()
    if not normalized:
        normalized = mime_from_url(url) or ""

    if normalized in INTERACTIVE_MIMES or normalized.startswith("application/"):
        return MediaKind.INTERACTIVE
    if normalized.startswith("video/") or normalized in ANIMATED_IMAGE_MIMES:
        return MediaKind.ANIMATION
    if normalized:
        return MediaKind.IMAGE

    if url:
        lowered = url.lower()
        if any(keyword in lowered for keyword in INTERACTIVE_KEYWORDS):
            return MediaKind.INTERACTIVE

    return MediaKind.IMAGE


def is_placeholder_thumbnail(url: str | None) -> bool:
    if not url:
        return False
    return any(cid in url for cid in PLACEHOLDER_THUMBNAIL_CIDS)


def resolve_thumbnail(thumbnail_url: str | None, image_url: str | None) -> str | None:
    """Pick the thumbnail to store for an artwork.

    Placeholder thumbnails are replaced by the primary image, and a thumbnail
    identical to the primary image is dropped to avoid storing it twice.
    Thumbnails that are not still images (video, html) are discarded.
    """
    if is_placeholder_thumbnail(thumbnail_url):
        thumbnail_url = image_url
    if thumbnail_url and classify_media(thumbnail_url) is not MediaKind.IMAGE:
        thumbnail_url = None
    if thumbnail_url and image_url and thumbnail_url == image_url:
        return None
    return thumbnail_url


def is_generative(*texts: str | None, contract_address: str | None = None) -> bool:
    """Detect generative art from collection names/descriptions or known contracts."""
    if contract_address and contract_address in GENERATIVE_CONTRACTS:
        return True
    haystack = " ".join(t for t in texts if t).lower()
    return any(keyword in haystack for keyword in GENERATIVE_KEYWORDS)
