"""
Tests for the dependency resolver
"""

import logging

import pytest

from rpmresolve.solver.exceptions import UnknownPackage, Unsatisfiable
from rpmresolve.solver.model import Dependency, Package
from rpmresolve.solver.request import ResolutionRequest
from rpmresolve.solver.resolver import Resolver, dedup, langpack_tag, resolve
from rpmresolve.solver.universe import Universe
from rpmresolve.testutil.repo import package


def nevras(result):
    return [p.nevra() for p in result.packages]


def test_highest_matching_version_is_selected():
    universe = Universe([
        package("libfoo", "2.0-1", requires=["libbar >= 1.5"]),
        package("libbar", "1.4-1"),
        package("libbar", "1.6-1"),
    ])

    result = resolve(universe, ["libfoo"])

    assert nevras(result) == ["libbar-1.6-1.x86_64", "libfoo-2.0-1.x86_64"]


def test_version_constraint_excludes_newer():
    universe = Universe([
        package("libfoo", "2.0-1", requires=["libbar < 1.5"]),
        package("libbar", "1.4-1"),
        package("libbar", "1.6-1"),
    ])

    assert nevras(resolve(universe, ["libfoo"])) == ["libbar-1.4-1.x86_64", "libfoo-2.0-1.x86_64"]


def test_epoch_wins_over_version():
    universe = Universe([
        package("libbar", "9.0-1"),
        package("libbar", "1:1.0-1"),
    ])

    assert nevras(resolve(universe, ["libbar"])) == ["libbar-1:1.0-1.x86_64"]


def test_transitive_closure():
    universe = Universe([
        package("app", requires=["liba"]),
        package("liba", requires=["libb >= 2"]),
        package("libb", "2.1-1", requires=["/usr/bin/python3"]),
        package("python3", "3.12-1", files=["/usr/bin/python3"]),
        package("unrelated"),
    ])

    result = resolve(universe, ["app"])

    assert result.names() == ["app", "liba", "libb", "python3"]


def test_obsoleted_package_is_excluded():
    universe = Universe([
        package("app", "2.0-1", obsoletes=["app-legacy"]),
        package("app-legacy", "9.0-1", provides=["legacy-lib"]),
        package("compat-lib", provides=["legacy-lib"]),
        package("tool", requires=["legacy-lib"]),
    ])
    resolver = Resolver(universe)

    result = resolver.resolve(ResolutionRequest(["app", "tool"]))
    assert result.names() == ["app", "compat-lib", "tool"]

    app, legacy = universe.by_name["app"][0], universe.by_name["app-legacy"][0]
    problem = resolver.prepare(ResolutionRequest(["app", "tool"]), {legacy.key(): app})
    assert [p.nevra() for p in problem.packages] == [
        "app-2.0-1.x86_64", "compat-lib-1.0-1.x86_64", "tool-1.0-1.x86_64",
    ]
    assert "tool-1.0-1.x86_64 requires legacy-lib, provided by compat-lib-1.0-1.x86_64; " \
        "app-legacy-9.0-1.x86_64 is obsoleted by app-2.0-1.x86_64" in problem.descriptions


def test_obsoletes_of_unselected_package_do_not_apply():
    universe = Universe([
        package("app", "2.0-1", provides=["app-runtime"], obsoletes=["app-legacy"]),
        package("app-legacy", "9.0-1", provides=["app-runtime"]),
        package("tool", requires=["app-runtime"]),
    ])

    assert resolve(universe, ["tool"]).names() == ["app-legacy", "tool"]


def test_obsoleting_alternative_is_not_selected():
    universe = Universe([
        package("app", requires=["cap", "tool"]),
        package("alpha", provides=["cap"], requires=["helper"]),
        package("helper"),
        package("tool-a", "2.0-1", provides=["tool"]),
        package("tool-b", provides=["tool"], obsoletes=["helper"]),
    ])

    assert resolve(universe, ["app"]).names() == ["alpha", "app", "helper", "tool-a"]


def test_obsoletion_is_explained():
    universe = Universe([
        package("app", requires=["cap", "tool"]),
        package("alpha", provides=["cap"], requires=["helper"]),
        package("helper"),
        package("tool-a", "2.0-1", provides=["tool"]),
        package("tool-b", provides=["tool"], obsoletes=["helper"]),
    ])

    with pytest.raises(Unsatisfiable) as exc:
        resolve(universe, ["app", "tool-b"])

    assert "nothing provides helper needed by alpha-1.0-1.x86_64; " \
        "helper-1.0-1.x86_64 is obsoleted by tool-b-1.0-1.x86_64" in exc.value.problems


def test_obsoleted_package_is_excluded_without_constraints():
    universe = Universe([
        package("app", "2.0-1", provides=["app-runtime"], obsoletes=["app-legacy"]),
        package("app-legacy", "9.0-1", provides=["app-runtime"]),
    ])

    assert resolve(universe, ["app"]).names() == ["app"]


def test_versioned_obsoletes():
    universe = Universe([
        package("app", "2.0-1", obsoletes=["app-legacy < 2.0"], requires=["app-legacy"]),
        package("app-legacy", "1.0-1"),
        package("app-legacy", "3.0-1"),
    ])

    assert nevras(resolve(universe, ["app"])) == ["app-2.0-1.x86_64", "app-legacy-3.0-1.x86_64"]


def test_requesting_obsoleted_package():
    universe = Universe([
        package("app", "2.0-1", obsoletes=["app-legacy"]),
        package("app-legacy", "9.0-1"),
    ])

    with pytest.raises(Unsatisfiable) as exc:
        resolve(universe, ["app", "app-legacy"])

    assert exc.value.problems == [
        "package app-legacy is requested, but all its candidates are obsoleted by app-2.0-1.x86_64",
    ]


def test_conflict_is_unsatisfiable():
    universe = Universe([
        package("a", conflicts=["b"]),
        package("b"),
    ])

    with pytest.raises(Unsatisfiable) as exc:
        resolve(universe, ["a", "b"])

    assert exc.value.problems == [
        "package a is requested",
        "package b is requested",
        "a-1.0-1.x86_64 conflicts with b provided by b-1.0-1.x86_64",
    ]
    assert "a-1.0-1.x86_64 conflicts with b" in str(exc.value)


def test_conflict_selects_alternative():
    universe = Universe([
        package("app", requires=["mail-agent"], conflicts=["sendmail"]),
        package("sendmail", "8.0-1", provides=["mail-agent"]),
        package("postfix", "3.0-1", provides=["mail-agent"]),
    ])

    assert resolve(universe, ["app"]).names() == ["app", "postfix"]


def test_alternatives_prefer_smallest_name():
    universe = Universe([
        package("app", requires=["mta"]),
        package("zmailer", provides=["mta"]),
        package("exim", provides=["mta"]),
    ])

    assert resolve(universe, ["app"]).names() == ["app", "exim"]


def test_one_version_per_name():
    universe = Universe([
        package("a", requires=["libbar < 1.5"]),
        package("b", requires=["libbar >= 1.5"]),
        package("libbar", "1.4-1"),
        package("libbar", "1.6-1"),
    ])

    with pytest.raises(Unsatisfiable) as exc:
        resolve(universe, ["a", "b"])

    assert any(p.startswith("only one package named libbar can be installed") for p in exc.value.problems)


def test_nothing_provides():
    universe = Universe([package("libfoo", requires=["libmissing"])])

    with pytest.raises(Unsatisfiable) as exc:
        resolve(universe, ["libfoo"])

    assert exc.value.problems == [
        "package libfoo is requested",
        "nothing provides libmissing needed by libfoo-1.0-1.x86_64",
    ]


def test_unknown_package():
    universe = Universe([package("bash")])

    with pytest.raises(UnknownPackage) as exc:
        resolve(universe, ["bash", "zsh"])

    assert exc.value.name == "zsh"


def test_self_provided_requirement_selects_nothing_else():
    universe = Universe([
        package("bash", requires=["/bin/sh"], files=["/bin/sh"]),
        package("busybox", "2.0-1", files=["/bin/sh"]),
    ])

    assert resolve(universe, ["bash"]).names() == ["bash"]


def test_ignored_requirements():
    universe = Universe([
        Package("app", "1.0", "1", "x86_64", requires=[
            Dependency("rpmlib(CompressedFileNames)", "LE", "3.0.4", "0", "1"),
            Dependency("(python3-foo if python3)"),
        ], recommends=[Dependency("extras")]),
        package("extras"),
    ])

    assert resolve(universe, ["app"]).names() == ["app"]


def test_deterministic():
    packages = [
        package("app", requires=["mta", "libbar"]),
        package("zmailer", provides=["mta"]),
        package("exim", provides=["mta"], requires=["libbar >= 1.5"]),
        package("libbar", "1.4-1"),
        package("libbar", "1.6-1"),
        package("libbar", "1.6-1", arch="aarch64"),
    ]
    expected = nevras(resolve(Universe(packages), ["app"]))

    for ordering in (list(reversed(packages)), packages[3:] + packages[:3]):
        assert nevras(resolve(Universe(ordering), ["app"])) == expected
    assert nevras(resolve(Universe(packages), ["app", "app"])) == expected


class TestArch:

    @pytest.fixture(name="universe")
    def universe_fixture(self):
        return Universe([
            package("bash", arch="x86_64", requires=["bash-common"]),
            package("bash", arch="aarch64", requires=["bash-common"]),
            package("bash", arch="src"),
            package("bash-common", arch="noarch"),
            package("srconly", arch="src"),
        ])

    @pytest.mark.parametrize("arch,expected", [
        pytest.param("x86_64", ["bash-1.0-1.x86_64", "bash-common-1.0-1.noarch"], id="x86_64"),
        pytest.param("aarch64", ["bash-1.0-1.aarch64", "bash-common-1.0-1.noarch"], id="aarch64"),
        pytest.param(None, ["bash-1.0-1.aarch64", "bash-common-1.0-1.noarch"], id="any"),
    ])
    def test_arch(self, universe, arch, expected):
        assert nevras(resolve(universe, ["bash"], arch=arch)) == expected

    def test_source_packages_are_never_candidates(self, universe):
        with pytest.raises(UnknownPackage):
            resolve(universe, ["srconly"])

    def test_other_arch_only(self, universe):
        with pytest.raises(UnknownPackage):
            resolve(universe, ["bash"], arch="ppc64le")


class TestLocale:

    @pytest.fixture(name="universe")
    def universe_fixture(self):
        return Universe([
            package("glibc", requires=["glibc-langpack"]),
            package("glibc-langpack-de", provides=["glibc-langpack"]),
            package("glibc-langpack-en", provides=["glibc-langpack"]),
            package("app", requires=["app-langpack"]),
            package("app-langpack-fr", provides=["app-langpack"]),
            package("dict", requires=["locale(de;at)"]),
            package("hunspell-de", provides=["locale(de;at)"]),
        ])

    @pytest.mark.parametrize("locale,expected", [
        pytest.param("en", ["glibc", "glibc-langpack-en"], id="en"),
        pytest.param("de", ["glibc", "glibc-langpack-de"], id="de"),
        pytest.param("de_DE", ["glibc", "glibc-langpack-de"], id="language-of-locale"),
    ])
    def test_langpack_for_locale(self, universe, locale, expected):
        assert resolve(universe, ["glibc"], locale=locale).names() == expected

    def test_foreign_langpacks_only_is_dropped(self, universe, caplog):
        with caplog.at_level(logging.DEBUG, logger="rpmresolve.solver.resolver"):
            assert resolve(universe, ["app"], locale="en").names() == ["app"]
        assert "only language packs for other locales" in caplog.text

    @pytest.mark.parametrize("locale,expected", [
        pytest.param("en", ["dict"], id="other-locale-dropped"),
        pytest.param("de", ["dict", "hunspell-de"], id="matching-locale"),
    ])
    def test_locale_requirement(self, universe, locale, expected):
        assert resolve(universe, ["dict"], locale=locale).names() == expected

    @pytest.mark.parametrize("name,tag", [
        pytest.param("glibc-langpack-de", "de", id="langpack"),
        pytest.param("glibc-langpack-pt_BR", "pt_BR", id="territory"),
        pytest.param("glibc-all-langpacks", None, id="neutral"),
        pytest.param("glibc", None, id="plain"),
    ])
    def test_langpack_tag(self, name, tag):
        assert langpack_tag(package(name)) == tag


def test_dedup():
    pkgs = [
        package("libbar", "1.4-1"),
        package("zlib"),
        package("libbar", "1.6-1"),
        package("bash", arch="aarch64"),
    ]
    assert [p.nevra() for p in dedup(pkgs)] == [
        "bash-1.0-1.aarch64",
        "libbar-1.6-1.x86_64",
        "zlib-1.0-1.x86_64",
    ]


def test_logging(caplog):
    universe = Universe([package("libfoo", requires=["libbar"]), package("libbar"), package("other")])

    with caplog.at_level(logging.DEBUG, logger="rpmresolve.solver.resolver"):
        resolve(universe, ["libfoo"])

    assert "Resolving libfoo: 2 of 3 packages involved" in caplog.text
    assert "2 variables, 2 clauses" in caplog.text
