r"""
Hawser argument declarations and schema markers.

Overview
- Records
  • Argument: names, description, requiredness, boolean inversion and executor chain
    attached to one data-class field.
  • Executor: a callback run after a field is assigned, optionally writing its result back.
  • Settings: per-schema configuration stored on the class by @controller.

- Factories
  • argument(...): build an Argument and wrap it into a dataclasses.field.
  • executor(...): build an Executor.
  • @controller / @controller(...): mark a data class as a parseable schema.

- Introspection & representation
  • Records use the shared IntrospectableType metaclass: stable __repr__/__rich_repr__
    and read-only properties for the names declared in __introspectable__.

Metadata (sanitized on construction)
- Argument
  • names: up to one short ('-n') and one long ('--name' or a bare word such as 'start').
  • descr: Unset | str (short help), non-empty when provided, None when omitted.
  • required / invert: bool.
  • executors: Iterable[Executor | Callable]; callables are wrapped as Executor(callback).
- Executor
  • callback: Callable | str (a method name resolved on the parsed instance).
  • assign: write the callback's return value back into the field.
  • nullary: call the callback without the field's value.
- Settings
  • name / descr, auto_help, respect_order, separator, execute, shell, fancy, colorful.

Validation highlights
- Names must not be empty, contain whitespace or double quotes, nor repeat.
- A separator must be one printable character other than '"' (the null character is rejected).
- descr strings are trimmed; empty strings are rejected.

Quick example:
    >>> from dataclasses import dataclass
    >>> from hawser import argument, controller, executor
    >>> @controller(name="tool")
    ... @dataclass
    ... class Args:
    ...     name: str = argument("-n", "--name", descr="user name", required=True)
    ...     verbose: bool = argument("-v", "--verbose", default=False)
    ...     message: str = argument("-m", executors=[executor(str.upper, assign=True)])
"""
import dataclasses
import re

from .tokens import validate_separator
from .utils import *
from .utils import IntrospectableType

METADATA = "hawser"


def _sanitize_descr(cls, metadata, /):
    """
    Internal: validate and normalize the 'descr' metadata shared by records.

    - Unset becomes None.
    - Strings are trimmed and must not end up empty.
    """
    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)


def _sanitize_names(cls, metadata, /):
    r"""
    Internal: classify names into a short and a long form.

    Accepted forms
    - short: a single dash followed by text ("-n", "-name").
    - long: a double dash followed by text ("--name") or a bare word used as a
      sub-command name ("start").

    Raises
    - TypeError: non-string names, or more than one name of the same form.
    - ValueError: empty names, names with whitespace or quotes, bare dashes, duplicates.
    """
    short = long = None
    seen = set()
    for name in metadata.pop("names"):
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not name:
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif re.search(r'[\s"]', name):
            raise ValueError(f"{cls.__typename__} names cannot contain whitespace or quotes")
        elif not name.strip("-"):
            raise ValueError(f"{cls.__typename__} names cannot be made of dashes only")
        elif name in seen:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        seen.add(name)

        if name.startswith("-") and not name.startswith("--"):
            if short is not None:
                raise TypeError(f"{cls.__typename__} accepts a single short name")
            short = name
        else:
            if long is not None:
                raise TypeError(f"{cls.__typename__} accepts a single long name")
            long = name

    metadata["short"] = short
    metadata["long"] = long


class Executor(metaclass=IntrospectableType):
    """
    Callback bound to a field and run after the field is assigned.

    Properties
    - callback: Callable | str. A string names a method of the parsed instance
      and is resolved each time the executor runs.
    - assign: bool. Write the callback's return value back into the field.
    - nullary: bool. Call the callback without arguments instead of passing
      the field's current value.
    """

    __introspectable__ = (
        "callback",
        "assign",
        "nullary",
    )

    def __new__(cls, callback, /, *, assign=False, nullary=False):
        if isinstance(callback, str):
            if not callback.isidentifier():
                raise ValueError(f"{cls.__typename__} method name must be an identifier")
        elif not callable(callback):
            raise TypeError(f"{cls.__typename__} callback must be callable or a method name")

        self = super().__new__(cls)
        self._callback = callback
        self._assign = bool(assign)
        self._nullary = bool(nullary)
        return self

    def resolve(self, instance, /):
        """Return the concrete callable, looking method names up on instance."""
        if not isinstance(self._callback, str):
            return self._callback
        try:
            method = getattr(instance, self._callback)
        except AttributeError:
            raise TypeError(
                f"{type(self).__typename__} method {self._callback!r} is not defined by {type(instance).__name__!r}"
            ) from None
        if not callable(method):
            raise TypeError(f"{type(self).__typename__} attribute {self._callback!r} is not callable")
        return method

    def invoke(self, callback, value, /):
        """Call a callback returned by resolve() with the field value (or none when nullary)."""
        if self._nullary:
            return callback()
        return callback(value)


class Argument(metaclass=IntrospectableType):
    """
    Field-level metadata describing how a data-class field is bound.

    Argument records are normally created through argument(), which also turns
    them into dataclasses.field objects; they are plain, immutable records.
    Name defaulting (the '--<field>' long name) happens at extraction time,
    when the field name is known.
    """

    __introspectable__ = (
        "short",
        "long",
        "descr",
        "required",
        "invert",
        "executors",
    )

    def __new__(
            cls,
            *names,
            descr=Unset,
            required=False,
            invert=False,
            executors=(),
    ):
        """
        Construct an Argument record.

        Parameters
        - names: zero to two str
          One short ("-n") and/or one long ("--name", or a bare sub-command word).
          When none is given, the long name is derived from the field name.
        - descr: Unset | str
          Short description for usage output. If Unset, becomes None.
        - required: bool
          The field must be supplied (its level fails otherwise).
        - invert: bool
          For boolean fields only: presence stores False instead of True, and
          absence defaults the field to True.
        - executors: Iterable[Executor | Callable]
          Callbacks run after assignment, in order.
        """
        metadata = {
            "names": names,
            "descr": descr,
            "required": bool(required),
            "invert": bool(invert),
        }
        _sanitize_names(cls, metadata)
        _sanitize_descr(cls, metadata)

        if isinstance(executors, str) or not hasattr(executors, "__iter__"):
            raise TypeError(f"{cls.__typename__} 'executors' must be an iterable")
        metadata["executors"] = tuple(
            object if isinstance(object, Executor) else Executor(object) for object in executors
        )

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self


class Settings(metaclass=IntrospectableType):
    """
    Per-schema configuration attached by @controller.

    Properties
    - name: Unset | str. Program name shown in usage and faults.
    - descr: str | None. Description shown under the usage line.
    - auto_help: bool. Intercept '-h' / '--help' and render usage.
    - respect_order: bool. Require arguments in declaration order.
    - separator: str. Key/value separator (default '=').
    - execute: bool. Run executors while parsing.
    - shell: bool. Print help and faults through rich instead of raising.
    - fancy: bool. Frame rendered faults in panels.
    - colorful: bool. Apply the palette when rendering.
    """

    __introspectable__ = (
        "name",
        "descr",
        "auto_help",
        "respect_order",
        "separator",
        "execute",
        "shell",
        "fancy",
        "colorful",
    )

    def __new__(
            cls,
            *,
            name=Unset,
            descr=Unset,
            auto_help=True,
            respect_order=False,
            separator="=",
            execute=False,
            shell=False,
            fancy=False,
            colorful=False,
    ):
        if not isinstance(name, str | Unset):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif isinstance(name, str) and not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} 'name' cannot be empty")

        metadata = {"descr": descr}
        _sanitize_descr(cls, metadata)

        self = super().__new__(cls)
        self._name = name
        self._descr = metadata["descr"]
        self._auto_help = bool(auto_help)
        self._respect_order = bool(respect_order)
        self._separator = validate_separator(separator)
        self._execute = bool(execute)
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        return self


def argument(*names, descr=Unset, required=False, invert=False, default=None, executors=()):
    """
    Declare a bound data-class field.

    Returns a dataclasses.field whose metadata carries an Argument record under
    the "hawser" key. The field default (None unless given) is what a parse
    leaves in place when the argument is absent; schemas must be constructible
    without arguments.

    Example
        name: str = argument("-n", "--name", descr="user name", required=True)
    """
    record = Argument(*names, descr=descr, required=required, invert=invert, executors=executors)
    return dataclasses.field(default=default, metadata={METADATA: record})


def executor(callback, /, *, assign=False, nullary=False):
    """
    Declare an executor for argument(executors=...).

    Example
        version: bool = argument("-v", executors=[executor(show_version, nullary=True)])
        name: str = argument("-n", executors=[executor("greet", assign=True)])
    """
    return Executor(callback, assign=assign, nullary=nullary)


def controller(schema=Unset, /, **settings):
    """
    Mark a data class as a parseable schema.

    Invocation modes
    - Bare decorator:
        @controller
        @dataclass
        class Args: ...
    - Configured decorator:
        @controller(name="tool", respect_order=True)
        @dataclass
        class Args: ...

    The Settings record is stored as the class attribute __controller__.
    """
    record = Settings(**settings)

    @rename("controller")
    def wrapper(schema, /):
        if not isinstance(schema, type) or not dataclasses.is_dataclass(schema):
            raise TypeError("@controller() must be applied to a dataclass")
        schema.__controller__ = record
        return schema

    return wrapper(schema) if schema is not Unset else wrapper


__all__ = (
    "Argument",
    "Executor",
    "Settings",
    "argument",
    "executor",
    "controller",
)
