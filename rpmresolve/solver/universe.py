"""
Package universe

Loads verified primary.xml and filelists.xml documents into `Package`
records and indexes them by name and by every capability they provide: the
explicit provides, the implicit `name = epoch:version-release` and every file
the package contains. The resulting `Universe` is built once and never
changes afterwards; the resolver only reads from it.
"""

import logging
import types
import xml.etree.ElementTree as ET
from typing import BinaryIO, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rpmresolve.repo.cache import CacheHelper
from rpmresolve.repo.exceptions import InvalidMetadata
from rpmresolve.repo.model import FILELISTS, PRIMARY
from rpmresolve.solver.exceptions import MalformedMetadata
from rpmresolve.solver.model import Checksum, Dependency, Package
from rpmresolve.solver.rpmver import package_key, ranges_overlap
from rpmresolve.util import checksum as checksum_util
from rpmresolve.util.compression import open_decompressed
from rpmresolve.util.types import PathLike

logger = logging.getLogger(__name__)

DEPENDENCY_KINDS = (
    "provides", "requires", "conflicts", "obsoletes",
    "recommends", "suggests", "enhances", "supplements",
)

PackageKey = Tuple[str, str, int, str, str]


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _find(node: ET.Element, name: str) -> Optional[ET.Element]:
    for c in node:
        if _local(c.tag) == name:
            return c
    return None


def _findtext(node: ET.Element, name: str) -> Optional[str]:
    c = _find(node, name)
    if c is None or c.text is None:
        return None
    return c.text.strip()


def _epoch(value: Optional[str], what: str) -> int:
    if value is None or value == "":
        return 0
    try:
        return int(value)
    except ValueError:
        raise MalformedMetadata(f"{what}: invalid epoch '{value}'") from None


def _parse_entries(node: Optional[ET.Element], what: str) -> List[Dependency]:
    deps: List[Dependency] = []
    if node is None:
        return deps
    for entry in node:
        if _local(entry.tag) != "entry":
            continue
        name = entry.get("name")
        if not name:
            raise MalformedMetadata(f"{what}: dependency entry without name")
        try:
            deps.append(Dependency(
                name,
                entry.get("flags", ""),
                entry.get("ver", ""),
                entry.get("epoch"),
                entry.get("rel"),
            ))
        except ValueError as e:
            raise MalformedMetadata(f"{what}: {e}") from e
    return deps


def _parse_version(node: ET.Element, what: str) -> Tuple[int, str, str]:
    version = _find(node, "version")
    if version is None or not version.get("ver") or version.get("rel") is None:
        raise MalformedMetadata(f"{what}: missing version")
    return _epoch(version.get("epoch"), what), version.get("ver"), version.get("rel")


def _parse_package(node: ET.Element, repo_id: Optional[str]) -> Package:
    name = _findtext(node, "name")
    if not name:
        raise MalformedMetadata(f"package without name in repository {repo_id}")
    arch = _findtext(node, "arch")
    if not arch:
        raise MalformedMetadata(f"package {name} has no arch")
    epoch, version, release = _parse_version(node, f"package {name}")
    what = f"{name}-{version}-{release}.{arch}"

    kwargs: Dict = {"repo_id": repo_id}
    for field in ("summary", "description", "packager", "url"):
        kwargs[field] = _findtext(node, field)

    csum = _find(node, "checksum")
    if csum is not None and csum.text and csum.get("type"):
        kwargs["checksum"] = Checksum(csum.get("type"), csum.text.strip())
    location = _find(node, "location")
    if location is not None:
        kwargs["location"] = location.get("href")
    time = _find(node, "time")
    if time is not None and time.get("build", "").isdigit():
        kwargs["build_time"] = int(time.get("build"))

    fmt = _find(node, "format")
    files: List[str] = []
    if fmt is not None:
        kwargs["license"] = _findtext(fmt, "license")
        kwargs["vendor"] = _findtext(fmt, "vendor")
        kwargs["source_rpm"] = _findtext(fmt, "sourcerpm")
        for kind in DEPENDENCY_KINDS:
            kwargs[kind] = _parse_entries(_find(fmt, kind), what)
        files = [f.text.strip() for f in fmt if _local(f.tag) == "file" and f.text]
    kwargs["files"] = files

    return Package(name, version, release, arch, epoch, **kwargs)


def _iter_packages(stream: BinaryIO) -> Iterable[ET.Element]:
    """Yield every top-level <package> element, freeing it afterwards"""
    depth = 0
    for event, elem in ET.iterparse(stream, events=("start", "end")):
        if event == "start":
            depth += 1
            continue
        depth -= 1
        if depth == 1 and _local(elem.tag) == "package":
            yield elem
            elem.clear()


def parse_primary(stream: BinaryIO, repo_id: Optional[str] = None) -> List[Package]:
    """Parse an uncompressed primary.xml stream"""
    try:
        return [_parse_package(node, repo_id) for node in _iter_packages(stream)]
    except ET.ParseError as e:
        raise MalformedMetadata(f"primary metadata of {repo_id}: {e}") from e


def parse_filelists(stream: BinaryIO) -> Dict[PackageKey, List[str]]:
    """Parse an uncompressed filelists.xml stream into files per package key"""
    result: Dict[PackageKey, List[str]] = {}
    try:
        for node in _iter_packages(stream):
            name, arch = node.get("name"), node.get("arch")
            if not name or not arch:
                raise MalformedMetadata("filelists package without name or arch")
            epoch, version, release = _parse_version(node, f"filelists package {name}")
            files = [f.text.strip() for f in node if _local(f.tag) == "file" and f.text]
            result.setdefault((name, arch, epoch, version, release), []).extend(files)
    except ET.ParseError as e:
        raise MalformedMetadata(f"filelists metadata: {e}") from e
    return result


def merge_filelists(packages: Sequence[Package], filelists: Mapping[PackageKey, List[str]]) -> None:
    """Add the files from filelists to the matching packages"""
    for pkg in packages:
        files = filelists.get(pkg.key())
        if not files:
            continue
        known = set(pkg.files)
        for f in files:
            if f not in known:
                pkg.files.append(f)
                known.add(f)


def load_repository(primary: PathLike, filelists: Optional[PathLike] = None,
                    repo_id: Optional[str] = None) -> List[Package]:
    """Load the packages of one repository from (possibly compressed) files"""
    with open_decompressed(primary) as stream:
        packages = parse_primary(stream, repo_id)
    if filelists is not None:
        with open_decompressed(filelists) as stream:
            merge_filelists(packages, parse_filelists(stream))
    logger.info("Loaded %d packages from %s", len(packages), repo_id or primary)
    return packages


def load_cached_repository(cachedir: PathLike, repo: str) -> List[Package]:
    """Load a repository previously persisted by the fetcher

    The typed files named in the cached repomd.xml are checked against the
    checksums it declares before they are parsed.
    """
    cache = CacheHelper(cachedir)
    try:
        repomd = cache.load_repomd(repo)
    except (ET.ParseError, InvalidMetadata) as e:
        raise MalformedMetadata(f"cached repomd.xml of {repo}: {e}") from e

    paths = {}
    for file_type in (PRIMARY, FILELISTS):
        data = repomd.file(file_type)
        if data is None or not data.href or data.checksum is None:
            raise MalformedMetadata(f"repomd.xml of {repo} has no usable '{file_type}' entry")
        filename = data.href.rsplit("/", 1)[-1]
        path = cache.path(repo, filename)
        if not cache.exists(repo, filename):
            raise FileNotFoundError(f"{file_type} metadata of {repo} not found at {path}")
        try:
            have = checksum_util.hexdigest_file(path, data.checksum.algorithm)
        except checksum_util.UnknownChecksumAlgorithm as e:
            raise MalformedMetadata(f"repomd.xml of {repo}, '{file_type}' entry: {e}") from e
        if have != data.checksum.value.lower():
            raise checksum_util.ChecksumMismatch(path, data.checksum.algorithm, data.checksum.value, have)
        paths[file_type] = path

    return load_repository(paths[PRIMARY], paths[FILELISTS], repo)


class Universe:
    """An immutable, indexed set of packages

    `provides` maps every capability name to the `(package, provide)`
    pairs that offer it, including self-provides and file provides.
    """

    def __init__(self, packages: Iterable[Package]) -> None:
        unique: Dict[PackageKey, Package] = {}
        for pkg in packages:
            if pkg.key() in unique:
                logger.debug("Ignoring duplicate %s from %s", pkg.nevra(), pkg.repo_id)
                continue
            unique[pkg.key()] = pkg
        self.packages: Tuple[Package, ...] = tuple(unique.values())

        by_name: Dict[str, List[Package]] = {}
        provides: Dict[str, List[Tuple[Package, Dependency]]] = {}
        for pkg in self.packages:
            by_name.setdefault(pkg.name, []).append(pkg)
            for dep in pkg.all_provides():
                provides.setdefault(dep.name, []).append((pkg, dep))
            for f in pkg.files:
                provides.setdefault(f, []).append((pkg, Dependency(f)))

        self.by_name: Mapping[str, Tuple[Package, ...]] = types.MappingProxyType(
            {name: tuple(sorted(pkgs, key=package_key)) for name, pkgs in by_name.items()})
        self.provides: Mapping[str, Tuple[Tuple[Package, Dependency], ...]] = types.MappingProxyType(
            {name: tuple(entries) for name, entries in provides.items()})

    def whatprovides(self, dep: Dependency) -> List[Package]:
        """Packages providing a capability matching `dep`, best first"""
        found = {}
        for pkg, provide in self.provides.get(dep.name, ()):
            if ranges_overlap(provide, dep):
                found[pkg.key()] = pkg
        return sorted(found.values(), key=package_key)

    def __len__(self) -> int:
        return len(self.packages)

    def __iter__(self):
        return iter(self.packages)


def load_repositories(cachedir: PathLike, repos: Sequence[str]) -> List[Package]:
    """Load the cached metadata of `repos`, in order, without network access"""
    packages: List[Package] = []
    for repo in repos:
        packages.extend(load_cached_repository(cachedir, repo))
    return packages


def load_universe(cachedir: PathLike, repos: Sequence[str]) -> Universe:
    """Build the universe from the cached metadata of `repos`

    Earlier repositories win when the same package is in several of them.
    """
    return Universe(load_repositories(cachedir, repos))
