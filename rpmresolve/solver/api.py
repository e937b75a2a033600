"""
Serialization of resolution results

The JSON documents produced here are what the command line prints and what
downstream build file generators consume.
"""

from typing import Any, Dict, List

from rpmresolve.solver.exceptions import Unsatisfiable
from rpmresolve.solver.model import Dependency, DepsolveResult, Package


def _dependency_as_str_list(deps: List[Dependency]) -> List[str]:
    return [str(dep) for dep in deps]


def _package_as_dict(package: Package) -> dict:
    """
    Returns a dictionary representation of a resolved RPM package.
    """
    return {
        "name": package.name,
        "epoch": package.epoch,
        "version": package.version,
        "release": package.release,
        "arch": package.arch,
        "checksum": str(package.checksum) if package.checksum else None,
        "location": package.location,
        "repo_id": package.repo_id,
    }


def package_details(package: Package) -> Dict[str, Any]:
    """
    Returns the full record of a package, including the pass-through fields
    and the weak dependencies the resolver does not act upon.
    """
    d = _package_as_dict(package)
    d.update({
        "summary": package.summary,
        "description": package.description,
        "license": package.license,
        "vendor": package.vendor,
        "url": package.url,
        "sourcerpm": package.source_rpm,
        "buildtime": package.build_time,
    })
    for kind in ("provides", "requires", "conflicts", "obsoletes",
                 "recommends", "suggests", "enhances", "supplements"):
        d[kind] = _dependency_as_str_list(getattr(package, kind))
    return d


def serialize_result(result: DepsolveResult) -> Dict[str, Any]:
    packages = sorted(result.packages, key=lambda p: (p.name, p.arch))
    return {
        "packages": [_package_as_dict(package) for package in packages],
    }


def serialize_problems(exc: Unsatisfiable) -> Dict[str, Any]:
    return {
        "kind": "Unsatisfiable",
        "reason": "unable to resolve dependencies",
        "problems": list(exc.problems),
    }
