import base64
import binascii

MAX_IMAGE_SIZE = 4 * 1024 * 1024  # 4MB
ALLOWED_IMAGE_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
}

_MAGIC_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
]


def sniff_image_format(image_bytes: bytes) -> str | None:
    head = image_bytes[:16]
    for magic, mime in _MAGIC_SIGNATURES:
        if head.startswith(magic):
            return mime
    if len(head) >= 12 and head.startswith(b"RIFF") and head[8:12] == b"WEBP":
        return "image/webp"
    return None


def validate_image_size(size: int) -> bool:
    return size <= MAX_IMAGE_SIZE


def validate_image_payload(
    image_bytes: bytes,
    *,
    content_type: str | None = None,
) -> str:
    if not image_bytes:
        raise ValueError("Image payload is empty.")
    if not validate_image_size(len(image_bytes)):
        raise ValueError(f"Image too large. Maximum size is {MAX_IMAGE_SIZE // (1024*1024)}MB.")

    mime = sniff_image_format(image_bytes)
    if not mime or mime not in ALLOWED_IMAGE_MIME_TYPES:
        raise ValueError("Unsupported image format. Allowed formats: jpg, png, webp, gif.")

    if content_type:
        normalized = content_type.split(";")[0].strip().lower()
        if not normalized.startswith("image/"):
            raise ValueError("Only image uploads are supported.")
        if normalized not in ALLOWED_IMAGE_MIME_TYPES and normalized != "image/jpg":
            raise ValueError("Unsupported image content type.")
        # Strict mismatch check blocks disguised payloads.
        if normalized != mime and not (normalized == "image/jpg" and mime == "image/jpeg"):
            raise ValueError("Image content type does not match the uploaded file signature.")

    return mime


def decode_image_data_url(data_url: str) -> tuple[bytes, str]:
    """Decode a ``data:image/...;base64,`` URL into raw bytes and its sniffed MIME type."""
    raw = (data_url or "").strip()
    if not raw.startswith("data:") or "," not in raw:
        raise ValueError("Image must be a base64 data URL.")
    header, encoded = raw.split(",", 1)
    meta = header[len("data:"):]
    parts = [p.strip().lower() for p in meta.split(";")]
    if "base64" not in parts[1:]:
        raise ValueError("Image must be a base64 data URL.")
    # Reject oversized payloads before decoding them.
    if len(encoded) > (MAX_IMAGE_SIZE * 4) // 3 + 4:
        raise ValueError(f"Image too large. Maximum size is {MAX_IMAGE_SIZE // (1024*1024)}MB.")
    try:
        image_bytes = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Image data is not valid base64.") from exc
    mime = validate_image_payload(image_bytes, content_type=parts[0] or None)
    return image_bytes, mime


def to_data_url(image_bytes: bytes, mime: str) -> str:
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime};base64,{encoded}"
