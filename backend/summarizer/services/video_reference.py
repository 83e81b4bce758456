"""
Video Reference Resolution

Normalizes the locators users paste (watch URLs, short links, embeds, shorts,
bare IDs) into the canonical 11-character YouTube video ID, and encodes/decodes
the identifiers handed out for uploaded subtitle files.
"""
import base64
import binascii
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse, parse_qs

from summarizer.exceptions import ReferenceInvalid, UploadInvalid

logger = logging.getLogger(__name__)

VIDEO_ID_LENGTH = 11

_VIDEO_ID_RE = re.compile(rf"^[0-9A-Za-z_-]{{{VIDEO_ID_LENGTH}}}$")

# Hosts whose URLs are parsed structurally before any regex is tried
VIDEO_HOSTS = ("youtube.com", "youtube-nocookie.com")
SHORT_HOSTS = ("youtu.be",)

# Tried in this order; the first match wins
FALLBACK_PATTERNS = [
    re.compile(r"(?:v=)([0-9A-Za-z_-]{11})(?:&|#|$)"),          # Watch URLs with query params
    re.compile(r"(?:embed/)([0-9A-Za-z_-]{11})(?=[?&#/]|$)"),    # Embed URLs
    re.compile(r"(?:youtu\.be/)([0-9A-Za-z_-]{11})(?=[?&#/]|$)"),  # Shortened URLs
    re.compile(r"(?:shorts/)([0-9A-Za-z_-]{11})(?=[?&#/]|$)"),   # Shorts
    re.compile(r"^([0-9A-Za-z_-]{11})$"),                        # Bare video ID
]

SRT_PREFIX = "srt:"


def is_valid_video_id(candidate: Optional[str]) -> bool:
    """Check that a string is exactly one well-formed 11-character video ID"""
    return bool(candidate) and _VIDEO_ID_RE.match(candidate) is not None


def _host_matches(hostname: str, hosts) -> bool:
    return any(hostname == host or hostname.endswith("." + host) for host in hosts)


def _parse_structured(raw: str) -> Optional[str]:
    """Pull the video ID out of a well-formed URL on a known host, or None"""
    parsed = urlparse(raw)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None

    hostname = parsed.hostname.lower()
    segments = [s for s in parsed.path.split("/") if s]

    if _host_matches(hostname, SHORT_HOSTS):
        candidate = segments[0] if segments else None
        return candidate if is_valid_video_id(candidate) else None

    if not _host_matches(hostname, VIDEO_HOSTS):
        return None

    if segments and segments[0] == "watch":
        values = parse_qs(parsed.query).get("v", [])
        candidate = values[0] if values else None
        return candidate if is_valid_video_id(candidate) else None

    for i, segment in enumerate(segments[:-1]):
        if segment in ("embed", "shorts", "live", "v"):
            candidate = segments[i + 1]
            if is_valid_video_id(candidate):
                return candidate

    return None


def resolve_video_id(raw: str) -> str:
    """
    Resolve a raw locator into the canonical video ID.

    Structured URL parsing is attempted first; if it fails or throws, the
    fallback regex patterns are tried in declared order.

    Args:
        raw: URL or bare identifier as typed by the user

    Returns:
        The 11-character video ID

    Raises:
        ReferenceInvalid: If no strategy yields a valid ID
    """
    if raw is None:
        raise ReferenceInvalid("Could not extract video ID from URL", "No URL provided")

    url = raw.strip()

    try:
        video_id = _parse_structured(url)
        if video_id:
            return video_id
    except ValueError as e:
        logger.debug(f"Structured URL parsing failed, falling back to patterns: {e}")

    for pattern in FALLBACK_PATTERNS:
        match = pattern.search(url)
        if match and is_valid_video_id(match.group(1)):
            return match.group(1)

    raise ReferenceInvalid(
        "Could not extract video ID from URL",
        f"No supported video URL pattern matched: {url[:200]}"
    )


# =============================================================================
# Subtitle upload identifiers
# =============================================================================

@dataclass(frozen=True)
class SrtReference:
    """Decoded subtitle upload identifier"""
    file_id: str
    filename: str
    video_id: Optional[str] = None

    def to_id(self) -> str:
        return build_srt_id(self.file_id, self.video_id or "", self.filename)


def build_srt_id(file_id: str, video_id: str, filename: str) -> str:
    """Build the canonical `srt:<fileId>:<videoId>:<filename>` identifier"""
    return f"{SRT_PREFIX}{file_id}:{video_id}:{filename}"


def is_srt_id(raw: Optional[str]) -> bool:
    """True when the value looks like a subtitle upload identifier, in any encoding"""
    if not raw:
        return False
    try:
        return _decode_legacy(raw.strip()).startswith(SRT_PREFIX)
    except UploadInvalid:
        return False


def _decode_legacy(raw: str) -> str:
    """Undo the URL-safe base64 wrapping older clients applied; plain IDs pass through"""
    if ":" in raw:
        return raw

    padded = raw.replace("-", "+").replace("_", "/")
    padded += "=" * (-len(padded) % 4)
    try:
        return base64.b64decode(padded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise UploadInvalid("Invalid SRT file identifier", f"Could not decode SRT ID: {e}")


def parse_srt_id(raw: str) -> SrtReference:
    """
    Decode a subtitle upload identifier.

    The plain four-field form is canonical. The legacy base64 wrapping and the
    three-field form without a video ID are decoded best-effort. A video ID
    is only kept if it passes the 11-character format check.

    Raises:
        UploadInvalid: If the identifier is malformed or the file ID is not a UUID
    """
    if not raw:
        raise UploadInvalid("Invalid SRT file identifier", "Empty SRT ID")

    decoded = _decode_legacy(raw.strip())
    if not decoded.startswith(SRT_PREFIX):
        raise UploadInvalid("Invalid SRT file identifier", f"Missing '{SRT_PREFIX}' prefix")

    parts = decoded[len(SRT_PREFIX):].split(":", 2)
    if len(parts) < 2:
        raise UploadInvalid("Invalid SRT file identifier", f"Too few fields in SRT ID: {decoded}")

    file_id = parts[0]
    try:
        uuid.UUID(file_id)
    except ValueError:
        raise UploadInvalid("Invalid SRT file identifier", f"Malformed file ID: {file_id}")

    if len(parts) == 3 and is_valid_video_id(parts[1]):
        return SrtReference(file_id=file_id, video_id=parts[1], filename=parts[2])

    if len(parts) == 3 and parts[1] == "":
        return SrtReference(file_id=file_id, filename=parts[2])

    # Legacy three-field form: the filename may itself contain colons
    logger.info(f"Decoding legacy SRT identifier without video ID: {file_id}")
    return SrtReference(file_id=file_id, filename=":".join(parts[1:]))
