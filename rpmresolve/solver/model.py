"""
Core domain model for the solver

This module contains data classes representing the fundamental domain objects
used by the solver: packages, dependencies, checksums and resolution results.

These models are produced by the universe loader and consumed by the resolver
and the result serialization.
"""

from typing import FrozenSet, List, Optional, Tuple

# Comparison flags as they appear in primary.xml
RELATIONS = {
    "EQ": "=",
    "LT": "<",
    "LE": "<=",
    "GT": ">",
    "GE": ">=",
}

# The inverse, for dependencies written as strings
OPERATORS = {op: flag for flag, op in RELATIONS.items()}
OPERATORS["=="] = "EQ"


def _validate_kwargs(kwargs: dict, allowed: FrozenSet[str], class_name: str) -> None:
    """
    Helper function for data classes to validate that kwargs only contains allowed keys.

    Raises:
        ValueError: If unrecognized keyword arguments are provided.
    """
    unrecognized = set(kwargs.keys()) - allowed
    if unrecognized:
        raise ValueError(
            f"{class_name}: unrecognized keyword arguments: {', '.join(sorted(unrecognized))}"
        )


class Dependency:
    """
    Represents an RPM dependency or provided capability.

    `relation` is one of the primary.xml flags (EQ, LT, LE, GT, GE) or empty
    for an unversioned capability. The version is kept split into epoch,
    version and release; an absent epoch is `None`.

    XXX: handle rich dependencies (e.g. "(libbpf >= 2:1.4.7 if libbpf)" or "(util-linux-core or util-linux)").
    """

    def __init__(self, name: str, relation: str = "", version: str = "",
                 epoch: Optional[str] = None, release: Optional[str] = None) -> None:
        if relation and relation not in RELATIONS:
            raise ValueError(f"Dependency {name}: unknown relation '{relation}'")
        if relation and not version:
            raise ValueError(f"Dependency {name}: relation '{relation}' without version")
        self.name = name
        self.relation = relation
        self.version = version
        self.epoch = epoch
        self.release = release

    @classmethod
    def from_string(cls, text: str) -> "Dependency":
        """Parse `name [op [epoch:]version[-release]]`, e.g. `libbar >= 1:1.5-2`"""
        parts = text.split()
        if len(parts) == 1:
            return cls(parts[0])
        if len(parts) != 3 or parts[1] not in OPERATORS:
            raise ValueError(f"invalid dependency string: '{text}'")
        name, op, evr = parts
        epoch, version, release = split_evr(evr)
        return cls(name, OPERATORS[op], version, epoch, release)

    @property
    def is_rich(self) -> bool:
        return self.name.startswith("(")

    def evr(self) -> Tuple[Optional[str], str, Optional[str]]:
        return self.epoch, self.version, self.release

    def evr_str(self) -> str:
        s = self.version
        if self.epoch is not None:
            s = f"{self.epoch}:{s}"
        if self.release:
            s += f"-{self.release}"
        return s

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return False
        return (
            self.name == other.name
            and self.relation == other.relation
            and self.version == other.version
            and self.epoch == other.epoch
            and self.release == other.release
        )

    def __hash__(self) -> int:
        return hash((self.name, self.relation, self.version, self.epoch, self.release))

    def __repr__(self) -> str:
        return f"Dependency(name='{self.name}', relation='{self.relation}', version='{self.version}', " \
            f"epoch={self.epoch!r}, release={self.release!r})"

    def __str__(self) -> str:
        s = self.name
        if self.relation:
            s += f" {RELATIONS[self.relation]} {self.evr_str()}"
        return s


def split_evr(evr: str) -> Tuple[Optional[str], str, Optional[str]]:
    """Split `[epoch:]version[-release]` into its three parts"""
    epoch = None
    if ":" in evr:
        epoch, evr = evr.split(":", 1)
    release = None
    if "-" in evr:
        evr, release = evr.rsplit("-", 1)
    return epoch, evr, release


class Checksum:
    """Represents a checksum of a repository file or an RPM package."""

    def __init__(self, algorithm: str, value: str) -> None:
        self.algorithm = algorithm
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Checksum):
            return False
        return self.algorithm == other.algorithm and self.value == other.value

    def __hash__(self) -> int:
        return hash((self.algorithm, self.value))

    def __repr__(self) -> str:
        return f"Checksum(algorithm='{self.algorithm}', value='{self.value}')"

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.value}"


# pylint: disable=too-many-instance-attributes
class Package:
    """
    Represents an RPM package record from primary.xml, with the file
    provides from filelists.xml merged into `files`.

    Within one universe `(name, arch, epoch, version, release)` identifies a
    package; several packages may share a name.
    """

    _ALLOWED_KWARGS = frozenset({
        "license",
        "source_rpm",
        "build_time",
        "packager",
        "vendor",
        "url",
        "summary",
        "description",
        "provides",
        "requires",
        "conflicts",
        "obsoletes",
        "recommends",
        "suggests",
        "enhances",
        "supplements",
        "files",
        "location",
        "checksum",
        "repo_id",
    })

    def __init__(self, name: str, version: str, release: str, arch: str, epoch: int = 0, **kwargs) -> None:
        _validate_kwargs(kwargs, self._ALLOWED_KWARGS, self.__class__.__name__)

        self.name = name
        self.version = version
        self.release = release
        self.arch = arch
        self.epoch = epoch

        self.license: Optional[str] = kwargs.get("license")
        self.source_rpm: Optional[str] = kwargs.get("source_rpm")
        self.build_time: Optional[int] = kwargs.get("build_time")
        self.packager: Optional[str] = kwargs.get("packager")
        self.vendor: Optional[str] = kwargs.get("vendor")

        # RPM package URL (project home address)
        self.url: Optional[str] = kwargs.get("url")

        self.summary: Optional[str] = kwargs.get("summary")
        self.description: Optional[str] = kwargs.get("description")

        # Regular dependencies
        self.provides: List[Dependency] = kwargs.get("provides", [])
        self.requires: List[Dependency] = kwargs.get("requires", [])
        self.conflicts: List[Dependency] = kwargs.get("conflicts", [])
        self.obsoletes: List[Dependency] = kwargs.get("obsoletes", [])

        # Weak dependencies, carried along but not solved
        self.recommends: List[Dependency] = kwargs.get("recommends", [])
        self.suggests: List[Dependency] = kwargs.get("suggests", [])
        self.enhances: List[Dependency] = kwargs.get("enhances", [])
        self.supplements: List[Dependency] = kwargs.get("supplements", [])

        # Files the package provides, from primary.xml and filelists.xml
        self.files: List[str] = kwargs.get("files", [])

        # RPM package relative path/location from repodata
        self.location: Optional[str] = kwargs.get("location")
        # Checksum object representing RPM package checksum and its type
        self.checksum: Optional[Checksum] = kwargs.get("checksum")
        # Repository ID this package belongs to
        self.repo_id: Optional[str] = kwargs.get("repo_id")

    def full_nevra(self) -> str:
        return f"{self.name}-{self.epoch}:{self.version}-{self.release}.{self.arch}"

    def nevra(self) -> str:
        """Like `full_nevra` but leaves out a zero epoch, the way rpm prints it"""
        if self.epoch:
            return self.full_nevra()
        return f"{self.name}-{self.version}-{self.release}.{self.arch}"

    def key(self) -> Tuple[str, str, int, str, str]:
        return self.name, self.arch, self.epoch, self.version, self.release

    def evr(self) -> Tuple[Optional[str], str, Optional[str]]:
        return str(self.epoch), self.version, self.release

    def self_provide(self) -> Dependency:
        """The implicit `name = epoch:version-release` every package provides"""
        return Dependency(self.name, "EQ", self.version, str(self.epoch), self.release)

    def all_provides(self) -> List[Dependency]:
        """Explicit provides plus the self-provide, without duplicates"""
        provides = list(self.provides)
        own = self.self_provide()
        if own not in provides:
            provides.append(own)
        return provides

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Package):
            return False
        return (
            self.name == other.name
            and self.version == other.version
            and self.release == other.release
            and self.arch == other.arch
            and self.epoch == other.epoch
            and self.license == other.license
            and self.source_rpm == other.source_rpm
            and self.build_time == other.build_time
            and self.packager == other.packager
            and self.vendor == other.vendor
            and self.url == other.url
            and self.summary == other.summary
            and self.description == other.description
            and self.provides == other.provides
            and self.requires == other.requires
            and self.conflicts == other.conflicts
            and self.obsoletes == other.obsoletes
            and self.recommends == other.recommends
            and self.suggests == other.suggests
            and self.enhances == other.enhances
            and self.supplements == other.supplements
            and self.files == other.files
            and self.location == other.location
            and self.checksum == other.checksum
            and self.repo_id == other.repo_id
        )

    def __hash__(self) -> int:
        return hash((self.key(), self.repo_id))

    def __str__(self) -> str:
        return self.nevra()

    def __repr__(self) -> str:
        return f"Package(name='{self.name}', version='{self.version}', release='{self.release}', " \
            f"arch='{self.arch}', epoch={self.epoch}, provides={self.provides}, requires={self.requires}, " \
            f"conflicts={self.conflicts}, obsoletes={self.obsoletes}, files={self.files}, " \
            f"location='{self.location}', checksum={self.checksum}, repo_id='{self.repo_id}')"


class DepsolveResult:
    """Result of a successful resolution: one package per name, ordered by name and arch."""

    def __init__(self, packages: List[Package]):
        self.packages = packages

    def names(self) -> List[str]:
        return [p.name for p in self.packages]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DepsolveResult):
            return False
        return self.packages == other.packages

    def __hash__(self) -> int:
        return hash(tuple(self.packages))

    def __repr__(self) -> str:
        return f"DepsolveResult(packages={self.packages})"
