"""Content type lookup for uploaded blobs."""

from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Mapping

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES: Mapping[str, str] = MappingProxyType(
    {
        # Archives
        ".7z": "application/x-7z-compressed",
        ".apk": "application/vnd.android.package-archive",
        ".bz2": "application/x-bzip2",
        ".deb": "application/x-debian-package",
        ".gz": "application/x-gzip",
        ".jar": "application/java-archive",
        ".rar": "application/x-rar-compressed",
        ".tar": "application/x-tar",
        ".zip": "application/zip",
        # Audio
        ".aac": "audio/x-aac",
        ".flac": "audio/x-flac",
        ".m3u": "audio/x-mpegurl",
        ".m4a": "audio/mp4",
        ".mid": "audio/midi",
        ".mp3": "audio/mpeg",
        ".oga": "audio/ogg",
        ".ogg": "audio/ogg",
        ".wav": "audio/x-wav",
        ".weba": "audio/webm",
        ".wma": "audio/x-ms-wma",
        # Documents
        ".csv": "text/csv",
        ".doc": "application/msword",
        ".docx": (
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        ),
        ".epub": "application/epub+zip",
        ".ics": "text/calendar",
        ".odp": "application/vnd.oasis.opendocument.presentation",
        ".ods": "application/vnd.oasis.opendocument.spreadsheet",
        ".odt": "application/vnd.oasis.opendocument.text",
        ".pdf": "application/pdf",
        ".ppt": "application/vnd.ms-powerpoint",
        ".pptx": (
            "application/vnd.openxmlformats-officedocument.presentationml.presentation"
        ),
        ".rtf": "application/rtf",
        ".txt": "text/plain",
        ".log": "text/plain",
        ".md": "text/markdown",
        ".xls": "application/vnd.ms-excel",
        ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        # Fonts
        ".eot": "application/vnd.ms-fontobject",
        ".otf": "application/x-font-otf",
        ".ttf": "application/x-font-ttf",
        ".woff": "application/x-font-woff",
        ".woff2": "font/woff2",
        # Images
        ".bmp": "image/bmp",
        ".gif": "image/gif",
        ".ico": "image/x-icon",
        ".jpeg": "image/jpeg",
        ".jpg": "image/jpeg",
        ".png": "image/png",
        ".psd": "image/vnd.adobe.photoshop",
        ".svg": "image/svg+xml",
        ".tif": "image/tiff",
        ".tiff": "image/tiff",
        ".webp": "image/webp",
        # Video
        ".avi": "video/x-msvideo",
        ".flv": "video/x-flv",
        ".m4v": "video/x-m4v",
        ".mkv": "video/x-matroska",
        ".mov": "video/quicktime",
        ".mp4": "video/mp4",
        ".mpeg": "video/mpeg",
        ".mpg": "video/mpeg",
        ".ogv": "video/ogg",
        ".webm": "video/webm",
        ".wmv": "video/x-ms-wmv",
        # Web and source
        ".c": "text/plain",
        ".css": "text/css",
        ".htm": "text/html",
        ".html": "text/html",
        ".java": "text/plain",
        ".js": "application/javascript",
        ".json": "application/json",
        ".py": "text/x-python",
        ".rss": "application/rss+xml",
        ".sh": "application/x-sh",
        ".sql": "application/sql",
        ".xhtml": "application/xhtml+xml",
        ".xml": "application/xml",
        ".yaml": "application/x-yaml",
        ".yml": "application/x-yaml",
        # Executables and images of media
        ".exe": "application/x-msdownload",
        ".iso": "application/x-iso9660-image",
        ".msi": "application/x-msdownload",
        ".swf": "application/x-shockwave-flash",
        ".torrent": "application/x-bittorrent",
    }
)


def normalize_extension(extension: str) -> str:
    """Normalize an extension to lower case with a leading dot.

    Examples:
        >>> normalize_extension("JPG")
        '.jpg'
        >>> normalize_extension(" .Tar ")
        '.tar'
        >>> normalize_extension("")
        ''
    """
    extension = extension.strip().lower()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension


def get_content_type(name_or_extension: str) -> str:
    """Look up the MIME type for a file name or an extension.

    Args:
        name_or_extension: File name, relative path (``"a/b.jpg"``) or bare
            extension with a leading dot (``".jpg"``). A name without a dot,
            such as ``"zip"``, is a file without an extension.

    Returns:
        Mapped MIME type, or ``application/octet-stream`` when unknown
    """
    if not name_or_extension:
        return DEFAULT_CONTENT_TYPE

    suffix = PurePosixPath(name_or_extension).suffix
    is_bare_extension = (
        name_or_extension.startswith(".") and "/" not in name_or_extension
    )
    if not suffix and is_bare_extension:
        suffix = name_or_extension

    return CONTENT_TYPES.get(normalize_extension(suffix), DEFAULT_CONTENT_TYPE)
