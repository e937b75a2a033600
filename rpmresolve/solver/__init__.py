"""Dependency resolution

`rpmresolve.solver.universe` loads verified repository metadata into an
immutable `Universe`, `rpmresolve.solver.resolver` resolves requested package
names against it and `rpmresolve.solver.api` serializes the outcome.
"""
