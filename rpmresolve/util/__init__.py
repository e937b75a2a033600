"""Utilities used across rpmresolve that do not depend on the repository or
solver models."""
