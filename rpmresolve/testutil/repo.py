"""
Builders for repository metadata documents

Tests describe packages compactly with `package()` and turn them into
primary.xml, filelists.xml, repomd.xml and metalink documents, or into a
complete repository tree with `make_repo_tree()`.
"""
import gzip
import hashlib
import lzma
import os
import xml.etree.ElementTree as ET
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import zstandard

from rpmresolve.solver.model import Checksum, Dependency, Package, split_evr

NS_COMMON = "http://linux.duke.edu/metadata/common"
NS_RPM = "http://linux.duke.edu/metadata/rpm"
NS_FILELISTS = "http://linux.duke.edu/metadata/filelists"
NS_REPO = "http://linux.duke.edu/metadata/repo"
NS_METALINK = "http://www.metalinker.org/"

ET.register_namespace("rpm", NS_RPM)

DEP_KINDS = ("provides", "requires", "conflicts", "obsoletes",
             "recommends", "suggests", "enhances", "supplements")


def package(name: str, evr: str = "1.0-1", arch: str = "x86_64", files: Sequence[str] = (),
            repo_id: Optional[str] = None, **deps: Sequence[str]) -> Package:
    """A package from strings: `package("app", "1:2.0-1", requires=["libbar >= 1.5"])`"""
    epoch, version, release = split_evr(evr)
    kwargs = {kind: [Dependency.from_string(d) for d in deps.pop(kind, ())] for kind in DEP_KINDS}
    if deps:
        raise ValueError(f"unknown dependency kinds: {', '.join(sorted(deps))}")
    return Package(
        name, version, release or "1", arch, int(epoch or 0),
        files=list(files),
        location=f"Packages/{name[0]}/{name}-{version}-{release or '1'}.{arch}.rpm",
        checksum=Checksum("sha256", hashlib.sha256(name.encode()).hexdigest()),
        repo_id=repo_id,
        **kwargs,
    )


def _version(parent: ET.Element, tag: str, pkg: Package) -> None:
    ET.SubElement(parent, tag, epoch=str(pkg.epoch), ver=pkg.version, rel=pkg.release)


def _entries(parent: ET.Element, kind: str, deps: List[Dependency]) -> None:
    if not deps:
        return
    node = ET.SubElement(parent, f"{{{NS_RPM}}}{kind}")
    for dep in deps:
        attrs = {"name": dep.name}
        if dep.relation:
            attrs["flags"] = dep.relation
            attrs["epoch"] = dep.epoch or "0"
            attrs["ver"] = dep.version
            if dep.release:
                attrs["rel"] = dep.release
        ET.SubElement(node, f"{{{NS_RPM}}}entry", attrs)


def primary_xml(packages: Iterable[Package], primary_files: bool = False) -> bytes:
    """primary.xml for `packages`; the files go to filelists unless `primary_files` is set"""
    packages = list(packages)
    root = ET.Element(f"{{{NS_COMMON}}}metadata", packages=str(len(packages)))
    for pkg in packages:
        node = ET.SubElement(root, f"{{{NS_COMMON}}}package", type="rpm")
        ET.SubElement(node, f"{{{NS_COMMON}}}name").text = pkg.name
        ET.SubElement(node, f"{{{NS_COMMON}}}arch").text = pkg.arch
        _version(node, f"{{{NS_COMMON}}}version", pkg)
        if pkg.checksum:
            csum = ET.SubElement(node, f"{{{NS_COMMON}}}checksum", type=pkg.checksum.algorithm, pkgid="YES")
            csum.text = pkg.checksum.value
        ET.SubElement(node, f"{{{NS_COMMON}}}summary").text = pkg.summary or f"The {pkg.name} package"
        ET.SubElement(node, f"{{{NS_COMMON}}}description").text = pkg.description or ""
        ET.SubElement(node, f"{{{NS_COMMON}}}url").text = pkg.url or ""
        ET.SubElement(node, f"{{{NS_COMMON}}}time", build=str(pkg.build_time or 0), file="0")
        if pkg.location:
            ET.SubElement(node, f"{{{NS_COMMON}}}location", href=pkg.location)
        fmt = ET.SubElement(node, f"{{{NS_COMMON}}}format")
        ET.SubElement(fmt, f"{{{NS_RPM}}}license").text = pkg.license or "MIT"
        ET.SubElement(fmt, f"{{{NS_RPM}}}sourcerpm").text = pkg.source_rpm or f"{pkg.name}-{pkg.version}.src.rpm"
        for kind in DEP_KINDS:
            _entries(fmt, kind, getattr(pkg, kind))
        if primary_files:
            for f in pkg.files:
                ET.SubElement(fmt, f"{{{NS_COMMON}}}file").text = f
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def filelists_xml(packages: Iterable[Package]) -> bytes:
    packages = list(packages)
    root = ET.Element(f"{{{NS_FILELISTS}}}filelists", packages=str(len(packages)))
    for pkg in packages:
        node = ET.SubElement(root, f"{{{NS_FILELISTS}}}package",
                             pkgid=pkg.checksum.value if pkg.checksum else "", name=pkg.name, arch=pkg.arch)
        _version(node, f"{{{NS_FILELISTS}}}version", pkg)
        for f in pkg.files:
            ET.SubElement(node, f"{{{NS_FILELISTS}}}file").text = f
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def compress(data: bytes, fmt: str) -> bytes:
    if fmt == "gz":
        return gzip.compress(data, mtime=0)
    if fmt == "xz":
        return lzma.compress(data)
    if fmt == "zst":
        return zstandard.ZstdCompressor().compress(data)
    if fmt == "":
        return data
    raise ValueError(f"unknown compression '{fmt}'")


def digest(data: bytes, algorithm: str = "sha256") -> str:
    return hashlib.new("sha1" if algorithm == "sha" else algorithm, data).hexdigest()


def repomd_xml(files: Dict[str, Tuple[str, bytes]], algorithm: str = "sha256",
               checksums: Optional[Dict[str, str]] = None) -> bytes:
    """repomd.xml for `files`, mapping type to `(href, content)`

    `checksums` overrides the computed digest per type.
    """
    checksums = checksums or {}
    root = ET.Element(f"{{{NS_REPO}}}repomd")
    ET.SubElement(root, f"{{{NS_REPO}}}revision").text = "1700000000"
    for file_type, (href, content) in files.items():
        node = ET.SubElement(root, f"{{{NS_REPO}}}data", type=file_type)
        csum = ET.SubElement(node, f"{{{NS_REPO}}}checksum", type=algorithm)
        csum.text = checksums.get(file_type, digest(content, algorithm))
        ET.SubElement(node, f"{{{NS_REPO}}}location", href=href)
        ET.SubElement(node, f"{{{NS_REPO}}}timestamp").text = "1700000000"
        ET.SubElement(node, f"{{{NS_REPO}}}size").text = str(len(content))
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def metalink_xml(repomd: Optional[bytes], urls: Sequence[Tuple[str, str]],
                 hashes: Optional[Dict[str, str]] = None) -> bytes:
    """A metalink listing `urls` as `(url, protocol)` for repomd.xml

    The hashes default to md5, sha1 and sha256 of `repomd`.
    """
    if hashes is None:
        hashes = {alg: digest(repomd or b"", alg) for alg in ("md5", "sha1", "sha256")}
    root = ET.Element(f"{{{NS_METALINK}}}metalink", version="3.0", type="dynamic")
    files = ET.SubElement(root, f"{{{NS_METALINK}}}files")
    node = ET.SubElement(files, f"{{{NS_METALINK}}}file", name="repomd.xml")
    ET.SubElement(node, f"{{{NS_METALINK}}}size").text = str(len(repomd or b""))
    verification = ET.SubElement(node, f"{{{NS_METALINK}}}verification")
    for alg, value in hashes.items():
        ET.SubElement(verification, f"{{{NS_METALINK}}}hash", type=alg).text = value
    resources = ET.SubElement(node, f"{{{NS_METALINK}}}resources", maxconnections="1")
    for i, (url, protocol) in enumerate(urls):
        u = ET.SubElement(resources, f"{{{NS_METALINK}}}url", protocol=protocol, type=protocol,
                          location="US", preference=str(100 - i))
        u.text = url
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def repo_files(packages: Iterable[Package], fmt: str = "gz") -> Dict[str, bytes]:
    """All files of a repository below its root, keyed by relative path"""
    packages = list(packages)
    ext = f".{fmt}" if fmt else ""
    primary = compress(primary_xml(packages), fmt)
    filelists = compress(filelists_xml(packages), fmt)
    primary_href = f"repodata/{digest(primary)}-primary.xml{ext}"
    filelists_href = f"repodata/{digest(filelists)}-filelists.xml{ext}"
    repomd = repomd_xml({
        "primary": (primary_href, primary),
        "filelists": (filelists_href, filelists),
    })
    return {
        "repodata/repomd.xml": repomd,
        primary_href: primary,
        filelists_href: filelists,
    }


def make_repo_tree(basedir: os.PathLike, packages: Iterable[Package], fmt: str = "gz") -> Dict[str, bytes]:
    """Write a repository for `packages` below `basedir` and return its files"""
    files = repo_files(packages, fmt)
    for path, content in files.items():
        target = os.path.join(basedir, path)
        os.makedirs(os.path.dirname(target), exist_ok=True)
        with open(target, "wb") as f:
            f.write(content)
    return files


class MirroredRepo:
    """A repository published on several https mirrors behind a metalink

    `responses` maps every url of it to its content, ready to be served
    by a `FakeGetter`. Tests modify it to make individual mirrors misbehave.
    """

    METALINK_URL = "https://mirrors.example.com/metalink?repo={name}&arch=x86_64"
    MIRRORS = (
        "https://mirror1.example.com/fedora/{name}/",
        "https://mirror2.example.com/pub/fedora/{name}/",
    )

    def __init__(self, name: str, packages: Iterable[Package], mirrors: Optional[Sequence[str]] = None,
                 hashes: Optional[Dict[str, str]] = None) -> None:
        self.name = name
        self.files = repo_files(packages)
        self.repomd = self.files["repodata/repomd.xml"]
        self.mirrors = [m.format(name=name) for m in (mirrors or self.MIRRORS)]
        self.metalink_url = self.METALINK_URL.format(name=name)
        self.metalink = metalink_xml(
            self.repomd, [(self.repomd_url(i), "https") for i in range(len(self.mirrors))], hashes)

        self.responses: Dict[str, object] = {self.metalink_url: self.metalink}
        for mirror in self.mirrors:
            for path, content in self.files.items():
                self.responses[mirror + path] = content

    def repomd_url(self, mirror: int) -> str:
        return self.mirrors[mirror] + "repodata/repomd.xml"

    def url(self, mirror: int, file_type: str) -> str:
        for path in self.files:
            if path.endswith(f"-{file_type}.xml.gz"):
                return self.mirrors[mirror] + path
        raise KeyError(file_type)
