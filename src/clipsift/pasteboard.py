import logging

from AppKit import (
    NSFilenamesPboardType,
    NSPasteboard,
    NSPasteboardTypePNG,
    NSPasteboardTypeString,
    NSPasteboardTypeTIFF,
    NSURL,
)
from Foundation import NSData

from clipsift.utils import detect_image_format

logger = logging.getLogger(__name__)

NSPasteboardTypeJPEG = "public.jpeg"
NSPasteboardTypeFileURL = "public.file-url"


class Pasteboard:
    """The general pasteboard, exposed as a clipboard reader and writer."""

    def __init__(self, pasteboard=None):
        self._pasteboard = pasteboard or NSPasteboard.generalPasteboard()

    def current_change_marker(self) -> int:
        return int(self._pasteboard.changeCount())

    def _types(self) -> list:
        types = self._pasteboard.types()
        return list(types) if types is not None else []

    def read_text(self) -> str | None:
        if NSPasteboardTypeString not in self._types():
            return None
        text = self._pasteboard.stringForType_(NSPasteboardTypeString)
        return str(text) if text else None

    def read_image_bytes(self) -> bytes | None:
        types = self._types()
        for img_type in (NSPasteboardTypePNG, NSPasteboardTypeJPEG, NSPasteboardTypeTIFF):
            if img_type not in types:
                continue
            data = self._pasteboard.dataForType_(img_type)
            if data is not None and len(data):
                return bytes(data)
        return None

    def read_file_reference(self) -> str | None:
        types = self._types()
        if NSFilenamesPboardType in types:
            filenames = self._pasteboard.propertyListForType_(NSFilenamesPboardType)
            if filenames:
                return str(list(filenames)[0])

        if NSPasteboardTypeFileURL in types:
            raw = self._pasteboard.stringForType_(NSPasteboardTypeFileURL)
            if raw:
                url = NSURL.URLWithString_(raw)
                if url is not None and url.isFileURL():
                    return str(url.path())
        return None

    def write_text(self, text: str) -> None:
        self._pasteboard.clearContents()
        if not self._pasteboard.setString_forType_(text, NSPasteboardTypeString):
            raise OSError("Pasteboard rejected text write")

    def write_image_bytes(self, data: bytes) -> None:
        fmt = detect_image_format(data)
        pb_type = {"jpeg": NSPasteboardTypeJPEG, "tiff": NSPasteboardTypeTIFF}.get(fmt, NSPasteboardTypePNG)
        ns_data = NSData.dataWithBytes_length_(data, len(data))
        self._pasteboard.clearContents()
        if not self._pasteboard.setData_forType_(ns_data, pb_type):
            raise OSError("Pasteboard rejected image write")
