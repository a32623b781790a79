from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import sys
import threading
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, cast


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    Parameters = Sequence[Any] | Mapping[str, Any] | None


_MISSING: Any = object()


class Kind(Enum):
    LITERAL = "literal"
    FACTORY = "factory"
    CLASS = "class"
    REFERENCE = "reference"


@dataclass(frozen=True)
class literal:  # noqa: N801
    """Mark an entry as plain data.

    Strings and callables wrapped with `literal` are returned as-is by `get`,
    never looked up as class references nor invoked as factories.
    """

    value: object


@dataclass
class Binding:
    id: str
    entry: object
    kind: Kind
    shared: bool = False
    resolved: bool = False
    instance: object = field(default=_MISSING, repr=False)  # cached shared instance


class ResolutionError(RuntimeError):
    # keyword defaults let pickle/copy rebuild from args; attributes come back from __dict__
    def __init__(self, msg: str, *, id: str = "") -> None:  # noqa: A002
        super().__init__(msg)
        self.id = id


class UnboundIdentifierError(ResolutionError, KeyError):
    def __str__(self) -> str:
        # KeyError would quote the message
        return RuntimeError.__str__(self)


class NonInstantiableTypeError(ResolutionError, TypeError):
    def __init__(self, msg: str, *, id: str = "", type: type | None = None) -> None:  # noqa: A002
        super().__init__(msg, id=id)
        self.type = type


class InvocationError(ResolutionError):
    pass


class InstantiationError(ResolutionError):
    def __init__(self, msg: str, *, id: str = "", type: type | None = None) -> None:  # noqa: A002
        super().__init__(msg, id=id)
        self.type = type


def classify(entry: object) -> tuple[Kind, object]:
    """Decide once, at registration, how an entry is resolved.

    Returns the kind together with the entry to store (`literal` wrappers are unwrapped).
    """
    if isinstance(entry, literal):
        return Kind.LITERAL, entry.value
    if inspect.isclass(entry):
        return Kind.CLASS, entry
    if callable(entry):
        return Kind.FACTORY, entry
    if isinstance(entry, str):
        return Kind.REFERENCE, entry
    return Kind.LITERAL, entry


class Container:
    """Minimal resolution container.

    - bind identifiers to literals, factories or classes
    - resolve on demand, forwarding caller parameters
    - shared bindings cache their first result.
    """

    def __init__(self) -> None:
        self._bindings: dict[str, Binding] = {}
        self._lock = threading.RLock()

    def has(self, id: str) -> bool:  # noqa: A002
        with self._lock:
            return id in self._bindings

    def __contains__(self, id: object) -> bool:  # noqa: A002
        return isinstance(id, str) and self.has(id)

    def set(self, id: str, entry: object = None, shared: bool = False) -> None:  # noqa: A002, FBT001, FBT002
        """Register (or replace) the binding for an identifier.

        Example:
          container.set("config.debug", True)
          container.set("db", create_db, shared=True)
          container.set("decimal.Decimal")  # entry defaults to the identifier

        Nothing is validated here; class references are looked up by `get`.
        """
        if entry is None:
            entry = id

        kind, entry = classify(entry)

        with self._lock:
            self.unset(id)
            self._bindings[id] = Binding(id=id, entry=entry, kind=kind, shared=shared)
            logger.debug("Bound %r as %s (shared=%s)", id, kind.value, shared)

    def unset(self, id: str) -> None:  # noqa: A002
        """Drop the binding for an identifier together with its cached instance."""
        with self._lock:
            binding = self._bindings.pop(id, None)
            if binding is None:
                return

            binding.resolved = False
            binding.instance = _MISSING
            logger.debug("Unbound %r", id)

    def get(self, id: str, parameters: Parameters = None) -> Any:  # noqa: A002
        """Resolve the identifier to a value.

        - Shared and already resolved: the cached instance, `parameters` ignored.
        - Factory: called with `parameters`.
        - Class: constructed with `parameters`.
        - Anything else: returned unchanged.

        A sequence of `parameters` is passed positionally, a mapping as keywords.

        The container lock is held while factories and constructors run. They
        may call back into this container from the same thread, but a factory
        that waits on another thread calling `get` or `set` here will deadlock.
        """
        with self._lock:
            binding = self._bindings.get(id)

            # Return cached shared instance if present
            if binding is not None and binding.resolved:
                logger.debug("Cache hit for %r", id)
                return binding.instance

            if binding is None:
                msg = f"Entry {id!r} is not bound in the container."
                raise UnboundIdentifierError(msg, id=id)

            args, kwargs = _split_parameters(parameters)

            if binding.kind is Kind.FACTORY:
                factory = cast("Callable[..., Any]", binding.entry)
                try:
                    instance = factory(*args, **kwargs)
                except Exception as e:
                    msg = f"Error invoking the factory for {id!r}: {e}"
                    raise InvocationError(msg, id=id) from e

            else:
                cls = _target_class(binding, id)
                if cls is None:
                    instance = binding.entry
                else:
                    instance = Constructor(id).construct(cls, *args, **kwargs)

            # Cache if shared
            if binding.shared:
                binding.instance = instance
                binding.resolved = True

            return instance


class Constructor:
    def __init__(self, id: str) -> None:  # noqa: A002
        self._id = id

    def construct(self, cls: type, *args: Any, **kwargs: Any) -> object:
        if inspect.isabstract(cls) or _is_protocol(cls):
            msg = f"Class {cls.__qualname__!r} is not instantiable."
            raise NonInstantiableTypeError(msg, id=self._id, type=cls)

        if not _has_constructor(cls):
            if args or kwargs:
                logger.warning("%s has no constructor; ignoring parameters given for %r", cls.__qualname__, self._id)
            args, kwargs = (), {}

        try:
            instance = cls(*args, **kwargs)
        except Exception as e:
            msg = f"Error instantiating class {cls.__qualname__!r} for {self._id!r}: {e}"
            raise InstantiationError(msg, id=self._id, type=cls) from e

        logger.debug("Constructed %s for %r", cls.__qualname__, self._id)
        return instance


def _target_class(binding: Binding, id: str) -> type | None:  # noqa: A002
    if binding.kind is Kind.CLASS:
        return cast("type", binding.entry)

    if binding.kind is Kind.REFERENCE:
        return _lookup_class(cast("str", binding.entry), id)

    return None


def _has_constructor(cls: type) -> bool:
    """Whether any class below `object` defines `__init__` or `__new__` itself.

    Methods generated by `typing` (the `__init__` that Protocol installs) do not count.
    """
    for base in cls.__mro__:
        if base in (object, Protocol, typing.Generic):
            continue
        for name in ("__init__", "__new__"):
            member = base.__dict__.get(name)
            if member is not None and getattr(member, "__module__", None) != "typing":
                return True

    return False


def _split_parameters(parameters: Parameters) -> tuple[tuple[Any, ...], dict[str, Any]]:
    if parameters is None:
        return (), {}

    if isinstance(parameters, Mapping):
        return (), dict(parameters)

    if isinstance(parameters, (str, bytes)):
        msg = f"parameters must be a sequence or a mapping, not {type(parameters).__name__}"
        raise TypeError(msg)

    return tuple(parameters), {}


def _lookup_class(name: str, id: str) -> type | None:  # noqa: A002
    """Look up a dotted path ("pkg.mod.Name" or "pkg.mod:Name"), returning it only if it is a class.

    Strings that are not such a path, or whose module or attribute does not exist,
    are plain data (None). A module that exists but fails to import is an error.
    """
    module_path, sep, qualname = name.partition(":")
    modules = module_path.split(".")
    attrs = qualname.split(".") if sep else []

    # a bare name cannot point at a class; never import it
    if len(modules) + len(attrs) < 2 or not all(part.isidentifier() for part in modules + attrs):
        return None

    try:
        obj = _import_path(modules, attrs, strict=bool(sep))
    except Exception as e:
        msg = f"Error importing {name!r} for {id!r}: {e}"
        raise InstantiationError(msg, id=id) from e

    if obj is _MISSING:
        logger.debug("%r does not name an importable object; treating it as a literal", name)
        return None

    if not inspect.isclass(obj):
        return None

    return obj


def _import_path(modules: list[str], attrs: list[str], *, strict: bool) -> object:
    if not _module_exists(modules[0]):
        return _MISSING

    path = modules[0]
    module = importlib.import_module(path)
    rest = modules[1:]
    while rest:
        candidate = f"{path}.{rest[0]}"
        if not hasattr(module, "__path__") or not _module_exists(candidate):
            break
        module = importlib.import_module(candidate)
        path = candidate
        rest = rest[1:]

    # "pkg.mod:Name" names its module explicitly
    if strict and rest:
        return _MISSING

    obj: object = module
    for attr in rest + attrs:
        obj = getattr(obj, attr, _MISSING)
        if obj is _MISSING:
            return _MISSING

    return obj


def _module_exists(name: str) -> bool:
    # find_spec of a top-level name or of a submodule whose parent is imported does not execute anything
    return name in sys.modules or importlib.util.find_spec(name) is not None


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def _is_protocol(tp: type) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def _is_protocol(tp: type) -> bool:
        """Detect whether 'tp' is a typing.Protocol class (not a nominal implementation of one)."""
        return inspect.isclass(tp) and tp is not Protocol and bool(getattr(tp, "_is_protocol", False))
