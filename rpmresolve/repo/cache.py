"""
Persisted repository metadata

One directory per repository below the cache directory, holding the raw
metalink (if any), repomd.xml and the metadata files under the names
they have on the mirror. Files are written once per fetch and read back by
the loader; a new fetch overwrites them. Content that fails verification is
kept next to them with a `.mismatch` suffix.
"""

import os
from typing import BinaryIO, Optional

from rpmresolve.repo.model import REPOMD, Metalink, Repomd
from rpmresolve.util import checksum
from rpmresolve.util.types import PathLike

METALINK = "metalink"
MISMATCH_SUFFIX = ".mismatch"


class CacheHelper:
    def __init__(self, cachedir: PathLike) -> None:
        self.cachedir = os.fspath(cachedir)

    def repo_dir(self, repo: str) -> str:
        return os.path.join(self.cachedir, repo)

    def path(self, repo: str, filename: str) -> str:
        return os.path.join(self.repo_dir(repo), filename)

    def exists(self, repo: str, filename: str) -> bool:
        return os.path.isfile(self.path(repo, filename))

    def write(self, repo: str, filename: str, src: BinaryIO, algorithm: str = "sha256",
              expected: Optional[str] = None, artifact: Optional[str] = None) -> str:
        """Persist `src` as `filename` of `repo` and return its hexdigest

        The digest is computed while writing. If `expected` is given it
        is compared once `src` is exhausted; on a mismatch the written file
        is kept as `<filename>.mismatch` for inspection and `ChecksumMismatch`
        is raised.
        """
        checksum.normalize_algorithm(algorithm)
        os.makedirs(self.repo_dir(repo), exist_ok=True)
        path = self.path(repo, filename)
        try:
            with open(path, "wb") as dst:
                return checksum.verify_stream(src, dst, algorithm, expected, artifact or filename)
        except checksum.ChecksumMismatch as e:
            e.kept = path + MISMATCH_SUFFIX
            os.replace(path, e.kept)
            raise

    def read(self, repo: str, filename: str) -> bytes:
        with open(self.path(repo, filename), "rb") as f:
            return f.read()

    def load_metalink(self, repo: str) -> Metalink:
        return Metalink.parse(self.read(repo, METALINK))

    def load_repomd(self, repo: str) -> Repomd:
        return Repomd.parse(self.read(repo, REPOMD))
