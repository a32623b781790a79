"""Minimal resolution container.

This package provides a small dependency injection container mapping string
identifiers to literal values, factories or classes, resolved on demand with
caller-supplied parameters and optional per-identifier caching.

Exports:
- `Container`: registry with `has`, `set`, `get` and `unset`.
- `literal`: wrapper forcing a string or callable entry to be returned as plain data.
- `Binding`, `Kind`: the stored recipe for an identifier and its classification.
- `ResolutionError` and its subclasses: failures raised by `Container.get`.
"""

from ._container import (
    Binding,
    Container,
    InstantiationError,
    InvocationError,
    Kind,
    NonInstantiableTypeError,
    ResolutionError,
    UnboundIdentifierError,
    literal,
)


__all__ = [
    "Binding",
    "Container",
    "InstantiationError",
    "InvocationError",
    "Kind",
    "NonInstantiableTypeError",
    "ResolutionError",
    "UnboundIdentifierError",
    "literal",
]
