"""Content-type classification, executed inside the target context.

This module is shipped into the target as source text and run there, so it
may only use the standard library and must not import from evalbridge.
The stored entries carry no MIME metadata, which is why the byte-level
heuristics exist at all.
"""

import mimetypes

TEXT = "text"
BINARY = "binary"
IMAGE = "image"
UNKNOWN = "unknown"

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico", ".bmp", ".avif")

TEXT_EXTENSIONS = (
    ".txt", ".json", ".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx", ".css", ".scss", ".sass", ".less",
    ".html", ".htm", ".md", ".markdown", ".xml", ".yaml", ".yml", ".toml", ".ini", ".cfg", ".conf",
    ".env", ".gitignore", ".sh", ".bash", ".zsh", ".fish", ".py", ".rb", ".php", ".java", ".c",
    ".cpp", ".h", ".hpp", ".rs", ".go", ".swift", ".kt", ".sql", ".graphql", ".vue", ".svelte",
    ".astro", ".csv", ".tsv", ".log", ".rst", ".tex", ".lua", ".pl", ".r", ".dart", ".scala",
    ".map", ".webmanifest", ".lock", ".properties",
)

BINARY_EXTENSIONS = (
    ".bin", ".dat", ".exe", ".dll", ".so", ".dylib", ".o", ".a", ".wasm", ".class", ".jar",
    ".zip", ".gz", ".tgz", ".tar", ".bz2", ".xz", ".7z", ".rar", ".zst", ".pdf", ".mp3", ".mp4",
    ".m4a", ".wav", ".ogg", ".oga", ".flac", ".webm", ".mov", ".avi", ".mkv", ".sqlite",
    ".sqlite3", ".db", ".woff", ".woff2", ".ttf", ".otf", ".eot", ".pyc", ".iso", ".dmg",
    ".parquet", ".avro", ".pb", ".onnx", ".glb", ".psd",
)

TEXT_MIME_TYPES = ("application/json", "application/javascript", "application/xml")

BINARY_MIME_PREFIXES = ("audio/", "video/", "font/")

BINARY_MIME_TYPES = (
    "application/octet-stream",
    "application/wasm",
    "application/pdf",
    "application/zip",
    "application/gzip",
    "application/x-tar",
    "application/x-7z-compressed",
    "application/x-bzip2",
    "application/x-xz",
    "application/vnd.sqlite3",
    "application/java-archive",
)

# vnd.* types that are text in practice
TEXT_VND_TYPES = ("application/vnd.api+json", "application/vnd.geo+json")

MAGIC_SIGNATURES = (
    ("png", b"\x89PNG\r\n\x1a\n"),
    ("jpeg", b"\xff\xd8\xff"),
    ("gif", b"GIF87a"),
    ("gif", b"GIF89a"),
    ("pdf", b"%PDF"),
    ("zip", b"PK\x03\x04"),
    ("zip", b"PK\x05\x06"),
    ("zip", b"PK\x07\x08"),
    ("elf", b"\x7fELF"),
    ("wasm", b"\x00asm"),
    ("sqlite", b"SQLite format 3\x00"),
    ("gzip", b"\x1f\x8b"),
    ("bzip2", b"BZh"),
    ("xz", b"\xfd7zXZ\x00"),
    ("riff", b"RIFF"),
    ("ogg", b"OggS"),
    ("java-class", b"\xca\xfe\xba\xbe"),
    ("pe", b"MZ"),
    ("7z", b"7z\xbc\xaf\x27\x1c"),
)

TEXT_OPENERS = ("{", "[", "<", "#", "//", "/*", "--", ";", "---")

WHITESPACE_CONTROLS = frozenset(b"\t\n\x0b\x0c\r")

MIME_BY_EXTENSION = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "bmp": "image/bmp",
    "avif": "image/avif",
    "json": "application/json",
    "js": "application/javascript",
    "html": "text/html",
    "css": "text/css",
    "xml": "application/xml",
    "md": "text/markdown",
    "txt": "text/plain",
}


def guess_mime_type(name, declared=""):
    if declared:
        return declared
    lowered = name.lower()
    extension = lowered.rsplit(".", 1)[-1] if "." in lowered else ""
    if extension in MIME_BY_EXTENSION:
        return MIME_BY_EXTENSION[extension]
    guessed, _ = mimetypes.guess_type(lowered)
    return guessed or "application/octet-stream"


def is_image(name, mime_type=""):
    return (mime_type or "").startswith("image/") or name.lower().endswith(IMAGE_EXTENSIONS)


def _classify_mime(mime_type):
    if not mime_type:
        return None
    mime_type = mime_type.split(";", 1)[0].strip().lower()
    if mime_type.startswith("text/") or mime_type in TEXT_MIME_TYPES:
        return TEXT
    if mime_type in BINARY_MIME_TYPES or mime_type.startswith(BINARY_MIME_PREFIXES):
        return BINARY
    if mime_type.startswith("application/vnd.") and mime_type not in TEXT_VND_TYPES:
        return BINARY
    return None


def _classify_extension(name):
    lowered = name.lower()
    if lowered.endswith(TEXT_EXTENSIONS):
        return TEXT
    if lowered.endswith(BINARY_EXTENSIONS):
        return BINARY
    return None


def match_magic(sample):
    for label, signature in MAGIC_SIGNATURES:
        if sample.startswith(signature):
            return label
    return None


def sniff_bytes(sample, high_byte_ratio=0.30, control_byte_ratio=0.10):
    """Classify a leading byte sample on content alone."""
    if not sample:
        return TEXT
    if match_magic(sample):
        return BINARY

    nulls = high = control = 0
    for byte in sample:
        if byte == 0:
            nulls += 1
        elif byte >= 0x80:
            high += 1
        elif (byte < 0x20 and byte not in WHITESPACE_CONTROLS) or byte == 0x7F:
            control += 1
    total = len(sample)
    if nulls:
        return BINARY
    if high / total > high_byte_ratio:
        return BINARY
    if control / total > control_byte_ratio:
        return BINARY

    head = sample.decode("utf-8", errors="replace").strip()
    if head.startswith(TEXT_OPENERS):
        return TEXT
    if not high and not control:
        return TEXT
    return UNKNOWN


def classify(
    name,
    mime_type,
    size,
    read_sample,
    *,
    sample_size=4096,
    high_byte_ratio=0.30,
    control_byte_ratio=0.10,
):
    """Decide text/binary/image/unknown for one stored file; first match wins.

    ``read_sample(n)`` returns up to ``n`` leading bytes and is only called
    when the name and declared type are not conclusive. ``unknown`` is a real
    answer: guessing text for binary data risks corrupting it on save.
    """
    if size == 0:
        return TEXT
    if is_image(name, mime_type):
        return IMAGE
    decided = _classify_mime(mime_type)
    if decided is not None:
        return decided
    decided = _classify_extension(name)
    if decided is not None:
        return decided
    return sniff_bytes(
        read_sample(sample_size),
        high_byte_ratio=high_byte_ratio,
        control_byte_ratio=control_byte_ratio,
    )
