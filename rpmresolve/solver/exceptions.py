"""
Exceptions for the rpmresolve solver
"""
from typing import List


class SolverException(Exception):
    pass


class MalformedMetadata(SolverException):
    """A package record lacks a required field or cannot be parsed"""


class UnknownPackage(SolverException):
    def __init__(self, name: str):
        super().__init__(f"no package named '{name}' in any repository")
        self.name = name


class Unsatisfiable(SolverException):
    """No package set satisfies the request

    `problems` lists human readable descriptions of a set of clauses
    that cannot hold together.
    """

    def __init__(self, problems: List[str]):
        msg = "unable to resolve dependencies:\n" + "\n".join(f"  - {p}" for p in problems)
        super().__init__(msg)
        self.problems = problems


class InvalidRequestError(SolverException):
    pass
