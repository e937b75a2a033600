"""
Dependency resolution

The resolver turns a request into a satisfiability problem over the
packages that could possibly take part in the result:

  1. every package named in the request is looked up by name
  2. the closure of all providers of all requirements is collected,
     leaving out packages already known to be obsoleted
  3. each remaining package gets a variable, numbered best first (highest
     epoch/version/release, then smallest name), and the clauses are built:
       requested name    ->  one of its packages
       package requires  ->  package implies one of the providers
       package conflicts ->  not both
       same name         ->  at most one of them
  4. the SAT core decides variables in that order, so every choice
     between alternatives goes to the best candidate that still works
  5. if a selected package obsoletes another selected package, the
     obsoleted one stops being a candidate and the request is solved
     again, until the selection obsoletes nothing of itself

On success exactly one package per name is returned, sorted by name and
arch. Otherwise `Unsatisfiable` names the clauses that cannot hold together.
"""

import itertools
import logging
import re
from typing import Dict, List, Optional, Set, Tuple

from rpmresolve.solver.exceptions import Unsatisfiable, UnknownPackage
from rpmresolve.solver.model import Dependency, DepsolveResult, Package
from rpmresolve.solver.request import ResolutionRequest
from rpmresolve.solver.rpmver import package_key, ranges_overlap
from rpmresolve.solver.sat import Solver
from rpmresolve.solver.universe import PackageKey, Universe

logger = logging.getLogger(__name__)

SOURCE_ARCHES = ("src", "nosrc")

_LANGPACK = re.compile(r"-langpack-([A-Za-z0-9_@.]+)$")
_LOCALE_CAP = re.compile(r"^locale\((.*)\)$")


def langpack_tag(pkg: Package) -> Optional[str]:
    """The language a `<base>-langpack-<tag>` package is for, `None` if neutral"""
    m = _LANGPACK.search(pkg.name)
    return m.group(1) if m else None


def locale_matches(tag: str, locale: str) -> bool:
    return tag in (locale, locale.split("_", 1)[0])


class Problem:
    """The satisfiability problem built for one request

    `packages` are the candidates in variable order (variable `i + 1` is
    `packages[i]`), `obsoleted` maps removed packages to the package that
    obsoletes them, `descriptions` holds one readable line per clause.
    """

    def __init__(self, request: ResolutionRequest) -> None:
        self.request = request
        self.packages: List[Package] = []
        self.obsoleted: Dict[PackageKey, Package] = {}
        self.clauses: List[List[int]] = []
        self.descriptions: List[str] = []
        self._var: Dict[PackageKey, int] = {}

    def var(self, pkg: Package) -> int:
        return self._var[pkg.key()]

    def set_packages(self, packages: List[Package]) -> None:
        self.packages = packages
        self._var = {p.key(): i + 1 for i, p in enumerate(packages)}

    def add(self, literals: List[int], description: str) -> None:
        self.clauses.append(literals)
        self.descriptions.append(description)

    def __contains__(self, pkg: Package) -> bool:
        return pkg.key() in self._var


class Resolver:
    """Resolves requests against one immutable `Universe`"""

    def __init__(self, universe: Universe) -> None:
        self.universe = universe

    @staticmethod
    def _eligible(pkg: Package, request: ResolutionRequest) -> bool:
        if pkg.arch in SOURCE_ARCHES:
            return False
        return request.arch is None or pkg.arch in (request.arch, "noarch")

    def providers(self, dep: Dependency, request: ResolutionRequest,
                  excluded: Set[PackageKey]) -> Optional[List[Package]]:
        """Packages that may satisfy requirement `dep`, best first

        Returns `None` if the requirement is not considered at all:
        rpmlib() and rich dependencies, locale() requirements for another
        language, and requirements only language packs for other languages
        would satisfy.
        """
        if dep.name.startswith("rpmlib("):
            return None
        if dep.is_rich:
            logger.debug("Ignoring rich dependency %s", dep)
            return None
        m = _LOCALE_CAP.match(dep.name)
        if m:
            tags = [t.strip() for t in re.split(r"[;,]", m.group(1)) if t.strip()]
            if not any(locale_matches(t, request.locale) for t in tags):
                return None

        found = [p for p in self.universe.whatprovides(dep)
                 if self._eligible(p, request) and p.key() not in excluded]
        usable = []
        for p in found:
            tag = langpack_tag(p)
            if tag is None or locale_matches(tag, request.locale):
                usable.append(p)
        if found and not usable:
            logger.debug("Dropping %s, only language packs for other locales provide it", dep)
            return None
        return usable

    def _roots(self, request: ResolutionRequest) -> Dict[str, List[Package]]:
        roots = {}
        for name in request.names:
            candidates = [p for p in self.universe.by_name.get(name, ()) if self._eligible(p, request)]
            if not candidates:
                raise UnknownPackage(name)
            roots[name] = candidates
        return roots

    def _closure(self, roots: Dict[str, List[Package]], request: ResolutionRequest,
                 excluded: Set[PackageKey]) -> List[Package]:
        seen: Dict[PackageKey, Package] = {}
        queue = [p for candidates in roots.values() for p in candidates if p.key() not in excluded]
        while queue:
            pkg = queue.pop(0)
            if pkg.key() in seen:
                continue
            seen[pkg.key()] = pkg
            for dep in pkg.requires:
                for provider in self.providers(dep, request, excluded) or ():
                    if provider.key() not in seen:
                        queue.append(provider)
        return sorted(seen.values(), key=package_key)

    def _obsoleted(self, selected: List[Package]) -> Dict[PackageKey, Package]:
        """Packages of `selected` that another package of `selected` obsoletes

        Obsoletes match package names (and versions), the way rpm applies
        them. Packages are processed best first and a package that is
        itself obsoleted does not obsolete others.
        """
        present = {p.key() for p in selected}
        found: Dict[PackageKey, Package] = {}
        for pkg in sorted(selected, key=package_key):
            if pkg.key() in found:
                continue
            for dep in pkg.obsoletes:
                for other in self.universe.by_name.get(dep.name, ()):
                    if other.name == pkg.name or other.key() not in present or other.key() in found:
                        continue
                    if ranges_overlap(other.self_provide(), dep):
                        found[other.key()] = pkg
        return found

    def prepare(self, request: ResolutionRequest,
                obsoleted: Optional[Dict[PackageKey, Package]] = None) -> Problem:
        """Build the clauses for `request` without solving them

        `obsoleted` maps packages that are no longer candidates to the
        package obsoleting them.
        """
        problem = Problem(request)
        problem.obsoleted = dict(obsoleted or {})
        excluded = set(problem.obsoleted)
        roots = self._roots(request)

        involved = self._closure(roots, request, excluded)
        problem.set_packages(involved)
        logger.info("Resolving %s: %d of %d packages involved", ", ".join(request.names),
                    len(involved), len(self.universe))

        for name, candidates in roots.items():
            lits = [problem.var(p) for p in candidates if p in problem]
            description = f"package {name} is requested"
            if not lits:
                by = sorted({problem.obsoleted[p.key()].nevra() for p in candidates})
                description += f", but all its candidates are obsoleted by {', '.join(by)}"
            problem.add(lits, description)

        for pkg in involved:
            v = problem.var(pkg)
            for dep in pkg.requires:
                candidates = self.providers(dep, request, set())
                if candidates is None or pkg in candidates:
                    continue
                providers = [p for p in candidates if p.key() not in excluded]
                gone = "".join(f"; {p.nevra()} is obsoleted by {problem.obsoleted[p.key()].nevra()}"
                               for p in candidates if p.key() in excluded)
                if not providers:
                    problem.add([-v], f"nothing provides {dep} needed by {pkg.nevra()}{gone}")
                    continue
                problem.add([-v] + [problem.var(p) for p in providers],
                            f"{pkg.nevra()} requires {dep}, provided by "
                            f"{', '.join(p.nevra() for p in providers)}{gone}")

        conflicts: Set[Tuple[int, int]] = set()
        for pkg in involved:
            v = problem.var(pkg)
            for dep in pkg.conflicts:
                for other in self.universe.whatprovides(dep):
                    if other.key() == pkg.key() or other not in problem:
                        continue
                    pair = tuple(sorted((v, problem.var(other))))
                    if pair in conflicts:
                        continue
                    conflicts.add(pair)
                    problem.add([-v, -problem.var(other)],
                                f"{pkg.nevra()} conflicts with {dep} provided by {other.nevra()}")

        for name, group in itertools.groupby(sorted(involved, key=lambda p: p.name), key=lambda p: p.name):
            group = list(group)
            for a, b in itertools.combinations(group, 2):
                problem.add([-problem.var(a), -problem.var(b)],
                            f"only one package named {name} can be installed: {a.nevra()} or {b.nevra()}")

        logger.debug("%d variables, %d clauses", len(problem.packages), len(problem.clauses))
        return problem

    def resolve(self, request: ResolutionRequest) -> DepsolveResult:
        """Solve `request`, repeating while the selection obsoletes part of itself

        Each round removes the selected packages that another selected
        package obsoletes from the candidates and solves again.
        """
        obsoleted: Dict[PackageKey, Package] = {}
        while True:
            problem = self.prepare(request, obsoleted)

            solver = Solver(len(problem.packages))
            for clause in problem.clauses:
                solver.add_clause(clause)
            result = solver.solve()

            if not result.satisfiable:
                raise Unsatisfiable([problem.descriptions[cid] for cid in result.core])

            selected = [problem.packages[v - 1] for v in sorted(result.model)]
            newly = self._obsoleted(selected)
            if not newly:
                return DepsolveResult(dedup(selected))
            for key, by in newly.items():
                logger.debug("Excluding %s, obsoleted by %s", present_name(key), by.nevra())
            obsoleted.update(newly)


def present_name(key: PackageKey) -> str:
    name, arch, epoch, version, release = key
    return f"{name}-{epoch}:{version}-{release}.{arch}"


def dedup(packages: List[Package]) -> List[Package]:
    """One package per name, the best one, sorted by name and arch"""
    best: Dict[str, Package] = {}
    for pkg in sorted(packages, key=package_key):
        best.setdefault(pkg.name, pkg)
    return sorted(best.values(), key=lambda p: (p.name, p.arch))


def resolve(universe: Universe, names: List[str], locale: str = "en", arch: Optional[str] = None) -> DepsolveResult:
    """Resolve `names` against `universe`; see `Resolver`"""
    return Resolver(universe).resolve(ResolutionRequest(names, locale, arch))
