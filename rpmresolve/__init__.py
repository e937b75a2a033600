"""rpmresolve Module

The `rpmresolve` module resolves the dependency closure of a set of RPM
packages against remote repositories. `rpmresolve.repo` fetches and verifies
repository metadata, `rpmresolve.solver` turns it into a package universe and
selects a consistent, deterministic package set from it.

The utility module `rpmresolve.util` provides checksum and decompression
helpers used by both.
"""

__version__ = "1"

__all__ = [
    "__version__",
]
