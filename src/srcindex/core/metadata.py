"""
Content metadata of indexed files.

MetadataGenerator reads a file and computes its hash, charset and line
index. MetadataScheduler binds that computation lazily to each record, or
forces it right after registration when preloading is enabled.
"""

import codecs
import hashlib
import logging
from typing import Optional

from .errors import MetadataError
from .interfaces import MetadataCallback
from .models import FileMetadata, IndexedFileRecord, LazyMetadata, ModuleContext, NotComputed

logger = logging.getLogger(__name__)

_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "UTF-8"),
    (codecs.BOM_UTF32_LE, "UTF-32LE"),
    (codecs.BOM_UTF32_BE, "UTF-32BE"),
    (codecs.BOM_UTF16_LE, "UTF-16LE"),
    (codecs.BOM_UTF16_BE, "UTF-16BE"),
)


def detect_bom(data: bytes) -> tuple[Optional[str], int]:
    """Return (charset, bom length) of a byte order mark, or (None, 0)."""
    for bom, charset in _BOMS:
        if data.startswith(bom):
            return charset, len(bom)
    return None, 0


def compute_metadata(data: bytes, encoding: str) -> FileMetadata:
    """
    Compute metadata of raw file content.

    A byte order mark overrides ``encoding``. Line endings are normalized to
    '\\n' before hashing so that the hash doesn't depend on the platform.

    Raises:
        UnicodeDecodeError: If the content can't be decoded
        LookupError: If the encoding is unknown
    """
    charset, bom_length = detect_bom(data)
    charset = charset or encoding
    text = data[bom_length:].decode(charset)

    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    content_hash = hashlib.md5(normalized.encode("utf-8")).hexdigest()

    offsets = [0]
    for index, char in enumerate(normalized):
        if char == "\n":
            offsets.append(index + 1)

    return FileMetadata(
        hash=content_hash,
        charset=charset,
        lines=len(offsets),
        line_offsets=tuple(offsets),
        last_valid_offset=len(normalized),
        empty=len(normalized) == 0,
    )


class MetadataGenerator(MetadataCallback):
    """Default metadata callback reading the file from disk."""

    def __call__(
        self, module_key_with_branch: str, record: IndexedFileRecord, encoding: str
    ) -> FileMetadata:
        data = record.path.read_bytes()
        metadata = compute_metadata(data, encoding)
        logger.debug(
            f"'{record.project_relative_path}' generated metadata with charset '{metadata.charset}'"
        )
        return metadata


class MetadataScheduler:
    """
    Decides when metadata of a record is computed.

    Args:
        callback: Computes metadata of one record
        preload: Compute metadata right after registration instead of on
            first access
    """

    def __init__(self, callback: MetadataCallback, preload: bool = False):
        self._callback = callback
        self._preload = preload

    @property
    def preload(self) -> bool:
        return self._preload

    def defer(self, module: ModuleContext) -> LazyMetadata:
        """Create the deferred metadata holder for a file of ``module``."""
        return LazyMetadata(self._callback, NotComputed(module.key_with_branch, module.encoding))

    def after_registration(self, record: IndexedFileRecord) -> None:
        """
        Force metadata computation when preloading is enabled.

        Raises:
            MetadataError: If the metadata can't be computed
        """
        if not self._preload:
            return
        try:
            record.metadata()
        except Exception as e:
            raise MetadataError(record.project_relative_path, e) from e
