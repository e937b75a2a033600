"""
Mirror resolution

Turns a repository configuration into the ordered list of candidate
repomd.xml urls, and maps metadata locations onto the mirror that was
pinned by a successful repomd.xml download. No network I/O happens here.
"""

import posixpath
import urllib.parse
from typing import List

from rpmresolve.repo.exceptions import InvalidMetadata, NoSecureMirror
from rpmresolve.repo.model import REPOMD, Metalink

REPOMD_PATH = "repodata/repomd.xml"


def resolve_mirrors(metalink: Metalink, source: str = "metalink") -> List[str]:
    """Return the https urls of repomd.xml listed in `metalink`, in document order

    Mirrors publish their preference by ordering, so the order is kept as
    is. Urls that are not tagged with the https protocol are dropped.
    Raises `NoSecureMirror` if nothing is left.
    """
    repomd = metalink.repomd()
    if repomd is None:
        raise InvalidMetadata(f"metalink {source} contains no reference to {REPOMD}")

    urls = [u.url for u in repomd.urls if u.is_secure]
    if not urls:
        raise NoSecureMirror(source)
    return urls


def repomd_url(baseurl: str) -> str:
    """The repomd.xml url for a repository given by its base url"""
    return baseurl.rstrip("/") + "/" + REPOMD_PATH


def mirror_base(url: str) -> str:
    """The repository root of a mirror, derived from its repomd.xml url

    `https://m/fedora/os/repodata/repomd.xml` becomes `https://m/fedora/os/`.
    """
    parts = urllib.parse.urlsplit(url)
    path = posixpath.dirname(parts.path)
    if path.endswith("repodata"):
        path = path[:-len("repodata")]
    if not path.endswith("/"):
        path += "/"
    return urllib.parse.urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def resolve_location(base: str, href: str) -> str:
    """Resolve a repomd `location` href against the pinned mirror

    Full urls are used as they are, everything else is taken relative to
    the repository root.
    """
    if urllib.parse.urlsplit(href).scheme:
        return href
    if href.startswith("/"):
        return urllib.parse.urljoin(base, href)
    return urllib.parse.urljoin(base, posixpath.normpath(href))
