"""Entrypoints for rpmresolve

This module contains the command-line-interface of `rpmresolve`. The
`rpmresolve_cli()` entrypoint can be safely used from tests to run the cli.

  rpmresolve fetch --config FILE
  rpmresolve resolve --config FILE PACKAGE...

`fetch` downloads and verifies the metadata of every configured repository
into the cache directory, `resolve` reads it back and prints the resolved
package set as JSON.
"""

import argparse
import json
import logging
import os
import sys
import typing
from typing import List, Optional

import rpmresolve
from rpmresolve import config as rpmconfig
from rpmresolve.config import ConfigError, ValidationResult
from rpmresolve.repo.exceptions import FetchError
from rpmresolve.repo.fetch import fetch
from rpmresolve.solver.api import serialize_problems, serialize_result
from rpmresolve.solver.exceptions import InvalidRequestError, SolverException, Unsatisfiable
from rpmresolve.solver.request import ResolutionRequest
from rpmresolve.solver.resolver import Resolver
from rpmresolve.solver.universe import load_universe
from rpmresolve.util.checksum import ChecksumMismatch
from rpmresolve.util.term import fmt as vt


def show_validation(result: ValidationResult, name: str) -> None:
    print(f"{vt.bold}{name}{vt.reset} has {vt.bold}{vt.red}errors{vt.reset}:", file=sys.stderr)
    print("", file=sys.stderr)

    for error in result:
        print(f"{vt.bold}{error.id}{vt.reset}:", file=sys.stderr)
        print(f"  {error.message}\n", file=sys.stderr)


def show_failure(msg: str) -> None:
    print(f"{vt.reset}{vt.bold}{vt.red}Failed{vt.reset}: {msg}", file=sys.stderr)


@typing.no_type_check  # see https://github.com/python/typeshed/issues/3107
def parse_arguments(sys_argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="rpmresolve",
                                     description="Resolve RPM package sets against verified repository metadata")
    parser.add_argument("--version", action="version",
                        help="return the version of rpmresolve",
                        version="%(prog)s " + rpmresolve.__version__)
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log debug messages")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-c", "--config", metavar="FILE", required=True,
                        help="json file describing the repositories")
    common.add_argument("--cachedir", metavar="DIRECTORY", type=os.path.abspath, default=None,
                        help="directory the repository metadata is stored in "
                             f"(default: $RPMRESOLVE_CACHEDIR or {rpmconfig.DEFAULT_CACHEDIR})")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    cmd_fetch = commands.add_parser("fetch", parents=[common],
                                    help="fetch and verify the metadata of all repositories")
    cmd_fetch.add_argument("-j", "--workers", metavar="N", type=int, default=1,
                           help="number of repositories fetched in parallel")

    cmd_resolve = commands.add_parser("resolve", parents=[common],
                                      help="resolve packages against the fetched metadata")
    cmd_resolve.add_argument("--lang", metavar="LOCALE", default=None,
                             help="locale language packs are selected for (default: en)")
    cmd_resolve.add_argument("--arch", metavar="ARCH", default=None,
                             help="architecture to resolve for, noarch is always included")
    cmd_resolve.add_argument("-o", "--output", metavar="FILE", default="-",
                             help="file the resolved package list is written to, '-' for stdout")
    cmd_resolve.add_argument("packages", metavar="PACKAGE", nargs="+",
                             help="names of the packages to resolve")

    return parser.parse_args(sys_argv[1:])


def write_json(data, path: str) -> None:
    if path == "-":
        json.dump(data, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return
    with open(path, "w", encoding="utf8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def cmd_fetch(args: argparse.Namespace, config: rpmconfig.Config) -> int:
    cachedir = args.cachedir or config.cachedir
    if args.workers < 1:
        show_failure("--workers must be at least 1")
        return 2
    try:
        fetched = fetch(config.repositories, cachedir, workers=args.workers)
    except FetchError as e:
        show_failure(str(e))
        return 1

    for repo in fetched:
        print(f"{repo.name + ':': <16}\t{repo.mirror}")
    return 0


def cmd_resolve(args: argparse.Namespace, config: rpmconfig.Config) -> int:
    cachedir = args.cachedir or config.cachedir
    try:
        request = ResolutionRequest(args.packages, args.lang or config.locale, args.arch or config.arch)
    except InvalidRequestError as e:
        show_failure(str(e))
        return 2

    try:
        universe = load_universe(cachedir, [repo.name for repo in config.repositories])
        result = Resolver(universe).resolve(request)
    except FileNotFoundError as e:
        show_failure(f"{e}, run 'rpmresolve fetch' first")
        return 1
    except Unsatisfiable as e:
        show_failure("unable to resolve dependencies")
        for problem in serialize_problems(e)["problems"]:
            print(f"  - {problem}", file=sys.stderr)
        return 1
    except (SolverException, FetchError, ChecksumMismatch) as e:
        show_failure(str(e))
        return 1

    write_json(serialize_result(result), args.output)
    return 0


def rpmresolve_cli(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv if argv is not None else sys.argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s: %(name)s: %(message)s")

    try:
        config = rpmconfig.load_config(args.config)
    except ConfigError as e:
        show_validation(e.result, args.config)
        return 2
    except OSError as e:
        show_failure(f"cannot read configuration: {e}")
        return 2

    try:
        if args.command == "fetch":
            return cmd_fetch(args, config)
        return cmd_resolve(args, config)
    except KeyboardInterrupt:
        print()
        print(f"{vt.reset}{vt.bold}{vt.red}Aborted{vt.reset}", file=sys.stderr)
        return 130
