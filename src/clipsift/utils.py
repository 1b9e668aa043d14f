import hashlib
import struct
from pathlib import Path

from clipsift.config import DATA_DIR, IMAGE_DIR

# (magic prefix, offset, format name); first match wins
_IMAGE_SIGNATURES: tuple[tuple[bytes, int, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", 0, "png"),
    (b"\xff\xd8\xff", 0, "jpeg"),
    (b"GIF87a", 0, "gif"),
    (b"GIF89a", 0, "gif"),
    (b"II*\x00", 0, "tiff"),
    (b"MM\x00*", 0, "tiff"),
    (b"BM", 0, "bmp"),
    (b"WEBP", 8, "webp"),
    (b"ftypheic", 4, "heic"),
    (b"ftypheix", 4, "heic"),
    (b"ftypmif1", 4, "heic"),
)


def compute_hash(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def ensure_dirs(image_dir: Path | None = None) -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    (image_dir or IMAGE_DIR).mkdir(parents=True, exist_ok=True)


def detect_image_format(data: bytes) -> str | None:
    """Identify common image encodings by their magic numbers.

    WebP additionally requires the RIFF container header.
    """
    for magic, offset, name in _IMAGE_SIGNATURES:
        if data[offset : offset + len(magic)] == magic:
            if name == "webp" and data[:4] != b"RIFF":
                continue
            return name
    return None


def get_image_dimensions(png_bytes: bytes) -> tuple[int, int]:
    if len(png_bytes) < 24 or png_bytes[:8] != b"\x89PNG\r\n\x1a\n":
        return (0, 0)
    width = struct.unpack(">I", png_bytes[16:20])[0]
    height = struct.unpack(">I", png_bytes[20:24])[0]
    return (width, height)


def save_image(img_bytes: bytes, content_hash: str, image_dir: Path | None = None) -> Path:
    """Write image bytes once under a hash-derived name and return the path."""
    target_dir = image_dir or IMAGE_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    ext = detect_image_format(img_bytes) or "bin"
    path = target_dir / f"{content_hash[:12]}.{ext}"
    if not path.exists():
        path.write_bytes(img_bytes)
    return path


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"
