"""
Repository metadata fetching

For every configured repository the fetcher walks the chain of trust:

  metalink (optional) -> repomd.xml -> primary / filelists

The metalink yields the https mirrors and the expected checksum of
repomd.xml. Mirrors are tried strictly one after the other; network and
parse failures move on to the next one, a checksum mismatch does not. The
first mirror that delivers a valid repomd.xml is pinned and the typed
metadata files are loaded from it only, each verified against the checksum
repomd.xml declares for it.

Every downloaded byte is written to the cache while being hashed, so the
files on disk are exactly what was verified.
"""

import concurrent.futures
import http.client
import logging
import os
import posixpath
import urllib.parse
import urllib.request
import xml.etree.ElementTree as ET
from typing import BinaryIO, ContextManager, Dict, List, Optional, Sequence, Tuple

from rpmresolve.config import RepositoryConfig
from rpmresolve.repo import mirrors
from rpmresolve.repo.cache import METALINK, CacheHelper
from rpmresolve.repo.exceptions import (FetchError, InvalidMetadata, MirrorsExhausted,
                                        RepositoryFetchError)
from rpmresolve.repo.model import FILELISTS, PRIMARY, REPOMD, Metalink, Repomd
from rpmresolve.solver.model import Checksum
from rpmresolve.util import checksum as checksum_util
from rpmresolve.util.types import PathLike

logger = logging.getLogger(__name__)

FILE_TYPES = (PRIMARY, FILELISTS)

# Errors a single mirror may produce that are worth trying the next one for
NETWORK_ERRORS = (OSError, http.client.HTTPException)


class Getter:
    """Opens urls for reading

    `get` returns a context manager yielding a binary file object. It raises
    an `OSError` (e.g. `urllib.error.URLError`) for anything that went wrong
    on the transport level.
    """

    def get(self, url: str) -> ContextManager[BinaryIO]:
        return urllib.request.urlopen(url)  # pylint: disable=consider-using-with


class FetchedRepository:
    """A repository whose metadata is verified and on disk"""

    def __init__(self, name: str, mirror: str, repomd: Repomd, files: Dict[str, str]) -> None:
        self.name = name
        # repository root of the pinned mirror
        self.mirror = mirror
        self.repomd = repomd
        # metadata file type -> path in the cache
        self.files = files

    def __repr__(self) -> str:
        return f"FetchedRepository(name='{self.name}', mirror='{self.mirror}', files={self.files})"


class RepoFetcher:
    """Fetches and verifies the metadata of a list of repositories

    Repositories are processed in configuration order, or with `workers`
    greater than one in a thread pool. Either way the first repository
    that fails aborts the whole run with a `RepositoryFetchError`.
    """

    def __init__(self, repos: Sequence[RepositoryConfig], cachedir: PathLike,
                 getter: Optional[Getter] = None, workers: int = 1,
                 file_types: Sequence[str] = FILE_TYPES) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.repos = list(repos)
        self.cache = CacheHelper(cachedir)
        self.getter = getter or Getter()
        self.workers = workers
        self.file_types = tuple(file_types)

    def fetch(self) -> List[FetchedRepository]:
        if self.workers == 1 or len(self.repos) <= 1:
            return [self.fetch_repository(repo) for repo in self.repos]

        with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {executor.submit(self.fetch_repository, repo): i for i, repo in enumerate(self.repos)}
            results: List[Optional[FetchedRepository]] = [None] * len(self.repos)
            try:
                for future in concurrent.futures.as_completed(futures):
                    results[futures[future]] = future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return results  # type: ignore[return-value]

    def fetch_repository(self, repo: RepositoryConfig) -> FetchedRepository:
        expected = None
        stage = METALINK
        try:
            if repo.metalink:
                urls, expected = self._resolve_metalink(repo)
            else:
                urls = [mirrors.repomd_url(repo.baseurl)]

            stage = REPOMD
            repomd, mirror = self._resolve_repomd(repo, urls, expected)

            files = {}
            for file_type in self.file_types:
                stage = file_type
                files[file_type] = self._fetch_file(file_type, repo, repomd, mirror)
        except (FetchError, ValueError, *NETWORK_ERRORS, ET.ParseError) as e:
            raise RepositoryFetchError(repo.name, stage, e) from e

        return FetchedRepository(repo.name, mirror, repomd, files)

    def _resolve_metalink(self, repo: RepositoryConfig) -> Tuple[List[str], Optional[Checksum]]:
        logger.info("Resolving metalink %s for %s", repo.metalink, repo.name)
        with self.getter.get(repo.metalink) as resp:
            self.cache.write(repo.name, METALINK, resp)

        metalink = self.cache.load_metalink(repo.name)
        urls = mirrors.resolve_mirrors(metalink, repo.metalink)

        repomd = metalink.repomd()
        expected = repomd.checksum()
        if expected is None and repomd.hashes:
            # hashes are given but none we could check
            raise checksum_util.UnknownChecksumAlgorithm(", ".join(sorted(repomd.hashes)))
        return urls, expected

    def _resolve_repomd(self, repo: RepositoryConfig, urls: List[str],
                        expected: Optional[Checksum]) -> Tuple[Repomd, str]:
        algorithm = expected.algorithm if expected else "sha256"
        # unknown algorithms are an error before anything is downloaded
        checksum_util.normalize_algorithm(algorithm)

        for url in urls:
            logger.info("Resolving repomd.xml from %s", url)
            try:
                with self.getter.get(url) as resp:
                    self.cache.write(repo.name, REPOMD, resp, algorithm,
                                     expected.value if expected else None, url)
            except NETWORK_ERRORS as e:
                logger.error("Failed to resolve repomd.xml from %s: %s", url, e)
                continue

            try:
                repomd = self.cache.load_repomd(repo.name)
            except (ET.ParseError, InvalidMetadata) as e:
                logger.error("Failed to decode repomd.xml from %s: %s", url, e)
                continue

            return repomd, mirrors.mirror_base(url)

        raise MirrorsExhausted(REPOMD, urls)

    def _fetch_file(self, file_type: str, repo: RepositoryConfig, repomd: Repomd, mirror: str) -> str:
        data = repomd.file(file_type)
        if data is None:
            raise InvalidMetadata(f"no '{file_type}' file referenced in repomd.xml")
        if not data.href:
            raise InvalidMetadata(f"the '{file_type}' file has no href associated")
        if data.checksum is None:
            raise InvalidMetadata(f"the '{file_type}' file has no checksum associated")
        checksum_util.normalize_algorithm(data.checksum.algorithm)

        url = mirrors.resolve_location(mirror, data.href)
        filename = posixpath.basename(urllib.parse.urlsplit(url).path)
        if not filename or filename in (REPOMD, METALINK):
            raise InvalidMetadata(f"the '{file_type}' file has an unusable href '{data.href}'")

        logger.info("Loading %s file from %s", file_type, url)
        try:
            with self.getter.get(url) as resp:
                self.cache.write(repo.name, filename, resp, data.checksum.algorithm, data.checksum.value, url)
        except NETWORK_ERRORS as e:
            raise MirrorsExhausted(filename, [url]) from e

        return self.cache.path(repo.name, filename)


def fetch(repos: Sequence[RepositoryConfig], cachedir: PathLike, workers: int = 1) -> List[FetchedRepository]:
    """Fetch all `repos` into `cachedir` with the default urllib getter"""
    os.makedirs(cachedir, exist_ok=True)
    return RepoFetcher(repos, cachedir, workers=workers).fetch()
