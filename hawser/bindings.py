"""
Hawser schema extraction: data classes -> trees of field bindings.

Overview
- Binding: immutable record tying one data-class field to its command-line
  names, resolved type, conversion kind, requiredness and executors. A field
  whose type is itself a data class becomes a nested binding (sub-command) whose
  children are the bindings of that class.
- extract(schema): walk a @controller data class in declaration order and
  build its binding tree. Root trees are cached per class, so every parse of a
  schema shares one read-only tree.

Resolution rules
- Only fields declared with argument() are bound; other fields are ignored.
- Annotations are resolved with typing.get_type_hints (string annotations and
  `from __future__ import annotations` are supported); Optional[X] / X | None
  unwrap to X.
- When an argument declares no name, its long name defaults to '--' followed by
  the lowercased field name.
- Names must be unique within one level and must not contain the separator.
"""
import dataclasses
import enum
import functools
import logging
import types
import typing
import weakref
from decimal import Decimal

from .arguments import METADATA, Settings
from .conversions import Kind, SizedInteger, Float32
from .faults import *
from .utils import *
from .utils import IntrospectableType

logger = logging.getLogger(__name__)


class Binding(metaclass=IntrospectableType):
    """
    Read-only description of one bound field.

    Properties
    - field: attribute name on the data class.
    - short / long: command-line names (at least one is set).
    - descr: description or None.
    - required / invert: declared flags.
    - type / kind: resolved Python type and its conversion family.
    - executors: tuple of Executor records.
    - children: nested bindings (empty unless kind is Kind.NESTED).
    - parent: enclosing nested binding, or None at the root level.
    """

    __introspectable__ = (
        "field",
        "short",
        "long",
        "descr",
        "required",
        "invert",
        "type",
        "kind",
        "executors",
        "children",
    )

    __displayable__ = (
        "field",
        "short",
        "long",
        "required",
        "kind",
        "children",
    )

    def __new__(cls, field, type, kind, /, *, short=None, long=None, descr=None, required=False, invert=False, executors=(), parent=None):
        if short is None and long is None:
            raise TypeError(f"{cls.__typename__} must have at least one name")
        if invert and kind is not Kind.BOOLEAN:
            raise TypeError(f"{cls.__typename__} {field!r} can only be inverted when boolean")

        self = super().__new__(cls)
        self._field = field
        self._type = type
        self._kind = kind
        self._short = short
        self._long = long
        self._descr = descr
        self._required = bool(required)
        self._invert = bool(invert)
        self._executors = tuple(executors)
        self._parent = weakref.ref(parent) if parent is not None else None
        self._children = ()
        return self

    @property
    def parent(self):
        return self._parent() if self._parent is not None else None

    @property
    def nested(self):
        return self._kind is Kind.NESTED

    @property
    def names(self):
        return tuple(name for name in (self._short, self._long) if name is not None)

    @property
    def name(self):
        """Preferred display name (long first)."""
        return self._long if self._long is not None else self._short

    @property
    def label(self):
        """Names joined for display, e.g. '-n, --name'."""
        return ", ".join(self.names)

    @property
    def qualname(self):
        """Label prefixed by the names of the enclosing sub-commands, e.g. 'start -u, --url'."""
        path = []
        parent = self.parent
        while parent is not None:
            path.append(parent.name)
            parent = parent.parent
        return " ".join([*reversed(path), self.label])

    def matches(self, token, /, separator="="):
        """
        Whether token designates this binding.

        Anything from the first occurrence of separator onward is ignored, so
        '--name=John' matches '--name'.
        """
        if not isinstance(token, str):
            return False
        key = token.partition(separator)[0]
        return key == self._short or key == self._long


def _kind(annotation, /):
    """Map a resolved annotation to its conversion family, or None when unsupported."""
    if not isinstance(annotation, type):
        return None
    if annotation is bool:
        return Kind.BOOLEAN
    if issubclass(annotation, enum.Enum):
        return Kind.ENUM
    if annotation is int or issubclass(annotation, SizedInteger):
        return Kind.INTEGER
    if annotation in (float, Float32, Decimal):
        return Kind.FLOAT
    if annotation is str:
        return Kind.STRING
    if dataclasses.is_dataclass(annotation):
        return Kind.NESTED
    return None


def _unwrap(annotation, /):
    """Strip Optional[...] / ... | None wrappers."""
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        arguments = [argument for argument in typing.get_args(annotation) if argument is not type(None)]
        if len(arguments) == 1:
            return arguments[0]
    return annotation


def _extract(schema, parent, separator, lineage, /):
    if not isinstance(schema, type) or not dataclasses.is_dataclass(schema):
        raise TypeError(f"binding schema must be a dataclass, not {schema!r}")
    if schema in lineage:
        raise TypeError(f"binding schema {schema.__name__!r} cannot nest itself")

    hints = typing.get_type_hints(schema)
    bindings = []

    for field in dataclasses.fields(schema):
        try:
            argument = field.metadata[METADATA]
        except KeyError:
            continue

        annotation = _unwrap(hints.get(field.name, field.type))
        if (kind := _kind(annotation)) is None:
            raise TypeError(
                f"binding {schema.__name__}.{field.name} has an unsupported type {annotation!r}"
            )

        short, long = argument.short, argument.long
        if short is None and long is None:
            long = "--" + field.name.lower()

        for name in filter(None, (short, long)):
            if separator in name:
                raise ValueError(
                    f"binding {schema.__name__}.{field.name} name {name!r} cannot contain the separator {separator!r}"
                )

        binding = Binding(
            field.name,
            annotation,
            kind,
            short=short,
            long=long,
            descr=argument.descr,
            required=argument.required,
            invert=argument.invert,
            executors=argument.executors,
            parent=parent,
        )
        if kind is Kind.NESTED:
            binding._children = _extract(annotation, binding, separator, lineage | {schema})

        logger.debug("extracted binding %r for %s.%s", binding.label, schema.__name__, field.name)
        bindings.append(binding)

    if __debug__:
        seen = set()
        for binding in bindings:
            for name in binding.names:
                if name in seen:
                    raise ValueError(f"binding name {name!r} is declared twice in {schema.__name__}")
                seen.add(name)

    return tuple(bindings)


@functools.cache
def _extract_root(schema, /):
    if not isinstance(schema, type) or not dataclasses.is_dataclass(schema):
        raise TypeError(f"binding schema must be a dataclass, not {schema!r}")

    settings = getattr(schema, "__controller__", None)
    if not isinstance(settings, Settings):
        raise MissingControllerError(
            "schema %r is not marked as a controller" % schema.__name__,
            title="missing controller",
            code=FaultCode.MISSING_CONTROLLER,
            hint="decorate %s with @controller" % schema.__name__,
            schema=schema,
            docs=getdoc(FaultCode.MISSING_CONTROLLER),
        )
    return _extract(schema, None, settings.separator, frozenset())


def extract(schema, /, parent=Unset, *, separator=Unset):
    """
    Build the binding tree of a schema.

    Parameters
    - schema: a data class. At the root (parent omitted) it must be decorated
      with @controller; its settings provide the separator.
    - parent: Binding. When given, schema is extracted as the children of that
      nested binding; no controller marker is required and nothing is cached.
    - separator: str. Only used with parent; defaults to '='.

    Returns
    - tuple[Binding, ...] in declaration order.

    Raises
    - MissingControllerError: root schema lacks @controller.
    - TypeError: schema is not a data class, a field type is unsupported, or
      a schema nests itself.
    - ValueError: duplicate names within a level, or a name containing the separator.
    """
    if parent is Unset:
        if separator is not Unset:
            raise TypeError("extract() separator is taken from the controller settings at the root")
        return _extract_root(schema)
    if not isinstance(parent, Binding):
        raise TypeError("extract() parent must be a binding")
    return _extract(schema, parent, coalesce(separator, "="), frozenset())


__all__ = (
    "Binding",
    "extract",
)
