"""
Exceptions raised while fetching repository metadata
"""
from typing import List


class FetchError(Exception):
    pass


class InvalidMetadata(FetchError):
    """A metalink or repomd document parsed but lacks required content"""


class NoSecureMirror(FetchError):
    def __init__(self, source: str):
        super().__init__(f"metalink {source} contains no https url to a repomd.xml file")
        self.source = source


class MirrorsExhausted(FetchError):
    def __init__(self, filename: str, urls: List[str]):
        super().__init__(f"all mirrors tried, could not download {filename} (tried: {', '.join(urls) or 'none'})")
        self.filename = filename
        self.urls = urls


class RepositoryFetchError(FetchError):
    """A hard error for a whole repository at a given stage

    `stage` is one of "metalink", "repomd.xml" or the metadata file type
    ("primary", "filelists"). The original error is kept in `cause`
    and chained via `__cause__`.
    """

    def __init__(self, repository: str, stage: str, cause: Exception):
        super().__init__(f"failed to fetch {stage} for repository '{repository}': {cause}")
        self.repository = repository
        self.stage = stage
        self.cause = cause
