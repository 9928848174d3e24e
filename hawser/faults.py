"""
Hawser faults (errors raised while binding arguments) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues.
  Codes are grouped by domain to keep copy consistent and make logs/searches
  predictable.
- BindingException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Position-first messages: every message includes the ordinal position of the
  offending token so users can learn by trying (“at third position”, etc.).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- The controller raises faults while parsing and routes them through
  Controller.trigger(), which merges runtime options and calls trigger().
- In non-shell mode, exceptions are raised; in shell mode, they are rendered via rich.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across hawser (stable identifiers).

    grouping (by high-level domain)
    - schema (110xx)
      • MISSING_CONTROLLER
    - matching (111xx)
      • UNKNOWN_ARGUMENT, INCORRECT_ARGUMENT_ORDER, DUPLICATED_ARGUMENT
    - values (112xx)
      • INVALID_ARGUMENT_TYPE, MISSING_VALUE
    - requiredness (113xx)
      • MISSING_REQUIRED_ARGUMENT
    - delegated errors (114xx)
      • DELEGATED_ERROR

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a string
      via normalize() so hosts can remap them if desired (e.g., to shorter labels).
    """
    # --- schema errors (110xx) ---
    MISSING_CONTROLLER          = 11001

    # --- matching errors (111xx) ---
    UNKNOWN_ARGUMENT            = 11101
    INCORRECT_ARGUMENT_ORDER    = 11102
    DUPLICATED_ARGUMENT         = 11103

    # --- value errors (112xx) ---
    INVALID_ARGUMENT_TYPE       = 11201
    MISSING_VALUE               = 11202

    # --- requiredness errors (113xx) ---
    MISSING_REQUIRED_ARGUMENT   = 11301

    # --- delegated errors (114xx) ---
    DELEGATED_ERROR             = 11401

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class BindingException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    @property
    def argument(self):
        return self.options.get("argument")

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", False)
        fancy = self.options.get("fancy", False)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        try:
            name = self.options["tool"].name
        except KeyError:
            name = "hawser"
        prog = text(getattr(main, "__prog__", name), styler("prog-name"))

        code = self.options.get("code")
        header = Text.assemble(
            "[ ",
            prog,
            " - ",
            text(code.normalize() if code is not None else "?", styler("code")),
            " | ",
            text(self.options.get("title", type(self).__name__).title(), styler("error-title")),
            " ]"
        )
        message = text(self.message, styler("error-message"))

        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if fancy:
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from self.__cause__
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        fault = type(self)(self.message, **{**self.options, **overrides})
        fault.__cause__ = self.__cause__
        return fault


class MissingControllerError(BindingException):
    @property
    def schema(self):
        return self.options.get("schema")


class UnknownArgumentError(BindingException):
    @property
    def suggestions(self):
        return tuple(self.options.get("suggestions", ()))


class IncorrectArgumentOrderError(BindingException):
    @property
    def expected(self):
        return self.options.get("expected")

    @property
    def received(self):
        return self.options.get("received")


class DuplicatedArgumentError(BindingException): ...


class InvalidArgumentTypeError(BindingException):
    @property
    def expected(self):
        return self.options.get("expected")

    @property
    def value(self):
        return self.options.get("value")


class MissingValueError(BindingException): ...
class MissingRequiredArgumentError(BindingException): ...
class DelegatedExecutorError(BindingException): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see BindingException).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, exceptions are raised.

    typical options
    - tool, shell, fancy, colorful, title, code, hint, and any other context the
      reporter may want to show (e.g., argument/expected/received/index).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    lookup
    - the host application may expose a __docs__ mapping in __main__ where keys
      are FaultCode instances and values are short documentation strings.
    - when not found, returns None (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "BindingException",
    "MissingControllerError",
    "UnknownArgumentError",
    "IncorrectArgumentOrderError",
    "DuplicatedArgumentError",
    "InvalidArgumentTypeError",
    "MissingValueError",
    "MissingRequiredArgumentError",
    "DelegatedExecutorError",
    "FaultCode",
    "trigger",
    "getdoc",
)
