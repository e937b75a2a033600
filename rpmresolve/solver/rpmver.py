"""
RPM version comparison

`vercmp` implements rpm's segment-wise comparison of version (and release)
strings:

  * strings are split into runs of ASCII digits and runs of ASCII letters,
    everything else only separates segments
  * numeric runs compare as numbers (leading zeros ignored), alphabetic runs
    compare as byte strings, a numeric run is newer than an alphabetic one
  * `~` sorts before anything, even the end of the string: 1.0~rc1 < 1.0
  * `^` sorts after the end of the string but before any further segment:
    1.0 < 1.0^git1 < 1.0.1
  * when all common segments are equal, the string with segments left over
    is newer

Epochs compare as integers. An absent epoch is the same as epoch 0, so
`2.0-1`, `0:2.0-1` compare equal and both are older than `1:2.0-1`.
"""

import functools
import re
from typing import Optional, Tuple

from rpmresolve.solver.model import split_evr

_DIGITS = re.compile(r"[0-9]+")
_ALPHA = re.compile(r"[A-Za-z]+")


def _isalnum(c: str) -> bool:
    return ("0" <= c <= "9") or ("a" <= c <= "z") or ("A" <= c <= "Z")


# pylint: disable=too-many-branches,too-many-return-statements
def vercmp(a: str, b: str) -> int:
    """Compare two version or release strings, returning -1, 0 or 1"""
    if a == b:
        return 0

    i = j = 0
    while i < len(a) or j < len(b):
        while i < len(a) and not _isalnum(a[i]) and a[i] not in "~^":
            i += 1
        while j < len(b) and not _isalnum(b[j]) and b[j] not in "~^":
            j += 1

        # tilde separator, sorts before everything else
        a_tilde = i < len(a) and a[i] == "~"
        b_tilde = j < len(b) and b[j] == "~"
        if a_tilde or b_tilde:
            if not a_tilde:
                return 1
            if not b_tilde:
                return -1
            i += 1
            j += 1
            continue

        # caret separator, like tilde except that the end of the string
        # sorts before it
        a_caret = i < len(a) and a[i] == "^"
        b_caret = j < len(b) and b[j] == "^"
        if a_caret or b_caret:
            if i >= len(a):
                return -1
            if j >= len(b):
                return 1
            if not a_caret:
                return 1
            if not b_caret:
                return -1
            i += 1
            j += 1
            continue

        if i >= len(a) or j >= len(b):
            break

        pattern = _DIGITS if a[i].isdigit() else _ALPHA
        isnum = pattern is _DIGITS
        ma = pattern.match(a, i)
        mb = pattern.match(b, j)

        # segments of different type: numeric is newer
        if mb is None:
            return 1 if isnum else -1

        seg_a, seg_b = ma.group(), mb.group()
        i, j = ma.end(), mb.end()

        if isnum:
            seg_a = seg_a.lstrip("0")
            seg_b = seg_b.lstrip("0")
            if len(seg_a) != len(seg_b):
                return 1 if len(seg_a) > len(seg_b) else -1

        if seg_a != seg_b:
            return 1 if seg_a > seg_b else -1

    if i >= len(a) and j >= len(b):
        return 0
    return -1 if i >= len(a) else 1


def _epoch(epoch) -> int:
    if epoch is None or epoch == "":
        return 0
    return int(epoch)


EVR = Tuple[Optional[str], str, Optional[str]]


def evrcmp(a: EVR, b: EVR) -> int:
    """Compare two (epoch, version, release) triples

    The release is only compared if both sides have one, so that a
    requirement on `foo >= 1.5` matches every release of foo-1.5.
    """
    ea, eb = _epoch(a[0]), _epoch(b[0])
    if ea != eb:
        return 1 if ea > eb else -1
    rc = vercmp(a[1] or "", b[1] or "")
    if rc:
        return rc
    if a[2] and b[2]:
        return vercmp(a[2], b[2])
    return 0


def labelcmp(a: str, b: str) -> int:
    """Compare two `[epoch:]version[-release]` strings"""
    return evrcmp(split_evr(a), split_evr(b))


def package_cmp(a, b) -> int:
    """Total order on packages used for every tie-break in the resolver

    Highest epoch/version/release first, then lexicographically smallest
    name, then arch, repository and the version strings as spelled so that
    the order is total.
    """
    rc = evrcmp(b.evr(), a.evr())
    if rc:
        return rc
    for x, y in ((a.name, b.name), (a.arch, b.arch), (a.repo_id or "", b.repo_id or ""),
                 (a.version, b.version), (a.release, b.release)):
        if x != y:
            return -1 if x < y else 1
    return 0


package_key = functools.cmp_to_key(package_cmp)


# Flags that each relation admits, relative to the compared version
_SENSES = {
    "EQ": {"EQ"},
    "LT": {"LT"},
    "LE": {"LT", "EQ"},
    "GT": {"GT"},
    "GE": {"GT", "EQ"},
}


def ranges_overlap(provide, require) -> bool:
    """Whether a provided capability satisfies a requirement

    Both arguments are `Dependency` objects. Names must be equal. An
    unversioned side matches everything; otherwise the two version ranges
    must intersect, following rpm's rpmdsCompare.
    """
    if provide.name != require.name:
        return False
    if not provide.relation or not require.relation:
        return True

    sense = evrcmp(provide.evr(), require.evr())
    p, r = _SENSES[provide.relation], _SENSES[require.relation]
    if sense < 0:
        return "GT" in p or "LT" in r
    if sense > 0:
        return "LT" in p or "GT" in r
    return bool(p & r)
