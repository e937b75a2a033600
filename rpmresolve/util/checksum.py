"""Checksum Utilities

Streaming verification of downloaded content. Every byte that is persisted
passes through a hasher on its way to the destination, and the digest is
compared only once the source is exhausted.
"""
import hashlib
import os
from typing import BinaryIO, Optional

from .types import PathLike

# How many bytes to read in one go. Taken from coreutils/gnulib
BLOCKSIZE = 32768

# Algorithm names as they appear in repomd.xml and metalink documents,
# mapped onto hashlib names. "sha" is what createrepo writes for sha1.
ALGORITHMS = {
    "md5": "md5",
    "sha": "sha1",
    "sha1": "sha1",
    "sha224": "sha224",
    "sha256": "sha256",
    "sha384": "sha384",
    "sha512": "sha512",
}

# Strongest first
STRENGTH = ["sha512", "sha384", "sha256", "sha224", "sha1", "md5"]


class UnknownChecksumAlgorithm(ValueError):
    def __init__(self, algorithm: str):
        super().__init__(f"unknown checksum algorithm '{algorithm}'")
        self.algorithm = algorithm


class ChecksumMismatch(ValueError):
    """The digest of a fully consumed stream differs from the expected one

    `kept` is the path the mismatching content was kept at, if any.
    """

    def __init__(self, artifact: str, algorithm: str, expected: str, actual: str):
        super().__init__(f"checksum mismatch for {artifact}: expected {algorithm} {expected}, but got {actual}")
        self.artifact = artifact
        self.algorithm = algorithm
        self.expected = expected
        self.actual = actual
        self.kept: Optional[str] = None

    def __str__(self):
        msg = super().__str__()
        if self.kept:
            msg += f" (content kept at {self.kept})"
        return msg


def normalize_algorithm(algorithm: str) -> str:
    """Return the hashlib name for `algorithm` or raise `UnknownChecksumAlgorithm`"""
    try:
        return ALGORITHMS[algorithm.lower()]
    except KeyError:
        raise UnknownChecksumAlgorithm(algorithm) from None


def new_hasher(algorithm: str):
    return hashlib.new(normalize_algorithm(algorithm))


def copy_and_hash(src: BinaryIO, dst: BinaryIO, algorithm: str) -> str:
    """Copy `src` to `dst` and return the hexdigest of everything copied

    The digest is updated chunk by chunk as the data is written, the
    source is read only once.
    """
    hasher = new_hasher(algorithm)

    while True:
        data = src.read(BLOCKSIZE)
        if not data:
            break
        hasher.update(data)
        dst.write(data)

    return hasher.hexdigest()


def verify_stream(src: BinaryIO, dst: BinaryIO, algorithm: str, expected: Optional[str], artifact: str) -> str:
    """Copy `src` to `dst` while hashing and check the result

    If `expected` is `None` the digest is only computed and returned.
    Otherwise it is compared against `expected` after the end of `src`
    was reached and `ChecksumMismatch` is raised on a difference. The
    algorithm is checked before the first byte is read.
    """
    actual = copy_and_hash(src, dst, algorithm)
    if expected is not None and actual != expected.lower():
        raise ChecksumMismatch(artifact, algorithm, expected, actual)
    return actual


def hexdigest_file(path: PathLike, algorithm: str) -> str:
    """Return the hexdigest of the file at `path` using `algorithm`

    Will stream the contents of file to the hash `algorithm` and
    return the hexdigest. If the specified `algorithm` is not
    supported `UnknownChecksumAlgorithm` will be raised.
    """
    hasher = new_hasher(algorithm)

    with open(path, "rb") as f:

        os.posix_fadvise(f.fileno(), 0, 0, os.POSIX_FADV_SEQUENTIAL)

        while True:
            data = f.read(BLOCKSIZE)
            if not data:
                break

            hasher.update(data)

    return hasher.hexdigest()


def verify_file(path: PathLike, checksum: str) -> bool:
    """Hash the file and return if the specified `checksum` matches

    `checksum` consists of the algorithm used and the digest joined
    via `:`, e.g. `sha256:abcd...`.
    """
    algorithm, want = checksum.split(":", 1)

    have = hexdigest_file(path, algorithm)

    return have == want.lower()


def strongest(algorithms) -> Optional[str]:
    """Pick the strongest known algorithm among `algorithms`, or `None`"""
    known = {}
    for name in algorithms:
        try:
            known[normalize_algorithm(name)] = name
        except UnknownChecksumAlgorithm:
            continue
    for name in STRENGTH:
        if name in known:
            return known[name]
    return None
