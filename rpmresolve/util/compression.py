"""Transparent decompression of repository metadata files

Repositories publish primary and filelists documents compressed with
gzip, xz, bzip2 or zstd. The format is detected from the leading magic
bytes, not from the file name, since mirrors are not consistent about
extensions.
"""
import bz2
import contextlib
import gzip
import lzma
from typing import BinaryIO, Iterator

import zstandard

from .types import PathLike

MAGIC_ZSTD = b"\x28\xb5\x2f\xfd"
MAGIC_GZIP = b"\x1f\x8b"
MAGIC_XZ = b"\xfd7zXZ\x00"
MAGIC_BZ2 = b"BZh"


def detect_format(head: bytes) -> str:
    """Return one of "zstd", "gzip", "xz", "bzip2" or "plain" for `head`"""
    if head.startswith(MAGIC_ZSTD):
        return "zstd"
    if head.startswith(MAGIC_GZIP):
        return "gzip"
    if head.startswith(MAGIC_XZ):
        return "xz"
    if head.startswith(MAGIC_BZ2):
        return "bzip2"
    return "plain"


@contextlib.contextmanager
def open_decompressed(path: PathLike) -> Iterator[BinaryIO]:
    """Open `path` for reading, decompressing on the fly if needed"""
    with open(path, "rb") as f:
        fmt = detect_format(f.read(8))
        f.seek(0)

        if fmt == "zstd":
            with zstandard.ZstdDecompressor().stream_reader(f) as reader:
                yield reader
        elif fmt == "gzip":
            with gzip.GzipFile(fileobj=f) as reader:
                yield reader
        elif fmt == "xz":
            with lzma.LZMAFile(f) as reader:
                yield reader
        elif fmt == "bzip2":
            with bz2.BZ2File(f) as reader:
                yield reader
        else:
            yield f
