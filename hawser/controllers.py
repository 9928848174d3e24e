"""
Hawser controller layer: parse token streams into schema instances.

What this module provides
- Controller: the per-schema engine. It owns the cached binding tree and the
  @controller settings, and turns a prompt (string or argv-like iterable) into
  a populated data-class instance:
  • Recursive descent into nested schemas (sub-commands) over one shared cursor.
  • Out-of-order matching within a level, or strict declaration order
    (respect_order=True).
  • Inline ('--name=value') and spaced ('--name value') values; presence-only booleans.
  • Required-argument checks once a level is done; inverted booleans default to True.
  • Help interception ('-h' / '--help') that renders the current level only and
    short-circuits every other check.
  • Executor chains, during parsing (execute=True) or afterwards via execute().
  • Fault redirection to a fallback sink or to a rich console (shell=True).

- Result: (instance, usage, fault) named tuple returned by parse().
- parse(schema, prompt): one-shot convenience wrapper.

Matching precedence at one level (out-of-order mode)
  help token > pending binding > already consumed binding (duplicate)
  > ancestor binding (level ends) > unknown flag > positional value.
The innermost level wins when a name is declared at several levels.

Quick start
    from dataclasses import dataclass
    from hawser import argument, controller, parse

    @controller(name="tool")
    @dataclass
    class Args:
        name: str = argument("-n", "--name", descr="user name", required=True)
        verbose: bool = argument("-v", "--verbose", default=False)

    result = parse(Args, "-n=John -v")
    result.instance  # Args(name='John', verbose=True)
"""
import difflib
import functools
import logging
import sys
from collections.abc import Iterable
from typing import NamedTuple

from rich.console import Console

from .bindings import extract
from .conversions import Kind, convert
from .faults import *
from .tokens import Cursor, tokenize, tokenize_argv
from .usage import HELPERS, render
from .utils import *
from .utils import IntrospectableType

logger = logging.getLogger(__name__)


@functools.cache
def _ordinal(number):
    """
    Return a human-friendly ordinal label for a 1-based position.

    - 1..10 are rendered as words ("first"…"tenth") for nicer phrasing in messages.
    - Other numbers use numeric ordinals with correct English suffixes.
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    if 10 < number % 100 < 20:
        return f"{number}th"

    return f'{number}%s' % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


def _numeric(token):
    try:
        float(token)
    except ValueError:
        return False
    return True


class Result(NamedTuple):
    """
    Outcome of Controller.parse().

    - instance: the populated schema instance (None when a fault was redirected).
    - usage: plain usage text when help was requested, otherwise None.
    - fault: the redirected fault, when a fallback or shell mode handled one.
    """
    instance: object
    usage: str | None = None
    fault: BindingException | None = None

    @property
    def helped(self):
        return self.usage is not None


class Controller(metaclass=IntrospectableType):
    """
    Parsing engine bound to one @controller schema.

    Lifecycle
    - Construction extracts (or reuses) the schema's binding tree and copies the
      settings; a controller holds no per-parse state and can parse many prompts.
    - parse() creates a fresh instance and a fresh cursor for each call.

    Properties mirror the schema settings: name, descr, auto_help, respect_order,
    separator, execute, shell, fancy, colorful; plus schema and bindings.
    """

    __introspectable__ = (
        "schema",
        "name",
        "descr",
        "bindings",
        "auto_help",
        "respect_order",
        "separator",
        "execute",
        "shell",
        "fancy",
        "colorful",
    )

    __displayable__ = (
        "schema",
        "name",
        "bindings",
        "respect_order",
        "separator",
        "execute",
        "shell",
    )

    def __new__(cls, schema, /):
        """
        Build a controller for schema.

        Raises
        - MissingControllerError: schema is not decorated with @controller.
        - TypeError / ValueError: the schema declarations are invalid (see extract()).
        """
        bindings = extract(schema)
        settings = schema.__controller__

        self = super().__new__(cls)
        self._schema = schema
        self._bindings = bindings
        self._name = settings.name or schema.__name__.lower()
        self._descr = settings.descr
        self._auto_help = settings.auto_help
        self._respect_order = settings.respect_order
        self._separator = settings.separator
        self._execute = settings.execute
        self._shell = settings.shell
        self._fancy = settings.fancy
        self._colorful = settings.colorful
        self._fallback = Unset
        return self

    @property
    def prog(self):
        """Displayed program name (__prog__ in __main__ wins over the configured name)."""
        return getattr(__import__("__main__"), "__prog__", self._name)

    def fallback(self, fallback, /):
        """
        Register a one-time fallback sink for faults.

        Once registered, faults raised by parse() and execute() are handed to
        the sink instead of being raised, and parse() returns a Result holding
        the fault.

        Returns
        - The same callable, enabling decorator-style usage: @controller.fallback
        """
        if not callable(fallback):
            raise TypeError(f"{type(self).__typename__} fallback must be callable")
        if self._fallback is not Unset:
            raise TypeError(f"{type(self).__typename__} fallback cannot be overridden")
        self._fallback = fallback
        return fallback

    def trigger(self, fault, /, **options):
        """
        Route a fault with this controller's runtime options.

        The fault is enriched with tool/shell/fancy/colorful, then given to the
        fallback sink when one is registered, otherwise surfaced through
        faults.trigger() (raised, or printed in shell mode).

        Returns
        - The enriched fault.
        """
        if (
                not hasattr(fault, "__trigger__") or
                not callable(fault.__trigger__) or
                not hasattr(fault, "__replace__") or
                not callable(fault.__replace__)
        ):
            raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
        fault = fault.__replace__(**options, tool=self, shell=self._shell, fancy=self._fancy, colorful=self._colorful)
        logger.debug("routing %s raised by %s", type(fault).__name__, self._name)
        if self._fallback:
            self._fallback(fault)
        else:
            trigger(fault)
        return fault

    def usage(self):
        """Render usage for the root level as rich Text."""
        return render(
            self._bindings,
            prog=self.prog,
            descr=self._descr,
            separator=self._separator,
            helpers=self._helpers(self._bindings),
            colorful=self._colorful,
        )

    def parse(self, prompt=Unset, /):
        """
        Parse a prompt into a new schema instance.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: command line string, split with hawser.tokens.tokenize.
          • Iterable[str]: pre-split vector, normalized with hawser.tokens.tokenize_argv.

        Returns
        - Result(instance, usage, fault).

        Raises
        - BindingException subclasses, unless a fallback is registered or shell mode is on.
        - TypeError: when prompt is not Unset/str/Iterable[str].
        """
        tokens = self._tokenize(prompt)
        try:
            return self._parse(Cursor(tokens))
        except BindingException as fault:
            if not self._fallback and not self._shell:
                raise
            return Result(None, None, self.trigger(fault))

    def execute(self, instance, /):
        """
        Run every executor chain of a parsed instance, depth first in declaration order.

        Leaves whose value is None, boolean leaves left at their absent value
        (False, or True when inverted), and nested bindings whose instance is
        None are skipped.

        Returns
        - list of the callbacks' return values (the values gathered before a
          redirected fault, when a fallback or shell mode handled one).
        """
        if not isinstance(instance, self._schema):
            raise TypeError(f"{type(self).__typename__} execute() argument must be a {self._schema.__name__!r} instance")
        results = []
        try:
            self._walk(instance, self._bindings, results)
        except BindingException as fault:
            if not self._fallback and not self._shell:
                raise
            self.trigger(fault)
        return results

    def _tokenize(self, prompt):
        if prompt is Unset:
            return tokenize_argv(sys.argv[1:], self._separator)
        elif isinstance(prompt, str):
            return tokenize(prompt, self._separator)
        elif isinstance(prompt, Iterable):
            return tokenize_argv(prompt, self._separator)
        raise TypeError("parse() argument must be a string or an iterable of strings")

    def _parse(self, cursor):
        instance = self._schema()
        usage = self._descend(instance, self._bindings, cursor, ())

        if usage is None and not cursor.exhausted:
            token = cursor.peek()
            if self._lookup(self._bindings, token):
                raise self._duplicated(token, cursor)
            raise self._unknown(token, cursor, self._bindings)

        if usage is None:
            return Result(instance)

        if self._shell:
            Console().print(usage)
        return Result(instance, usage.plain)

    def _descend(self, instance, bindings, cursor, ancestors, owner=None):
        logger.debug("entering %s at %s position", owner.name if owner else self._name, _ordinal(cursor.index + 1))
        if self._respect_order:
            usage = self._strict(instance, bindings, cursor, ancestors, owner)
        else:
            usage = self._relaxed(instance, bindings, cursor, ancestors, owner)
        logger.debug("leaving %s", owner.name if owner else self._name)
        return usage

    def _relaxed(self, instance, bindings, cursor, ancestors, owner):
        pending = list(bindings)
        helpers = self._helpers(bindings)
        scope = ancestors + (bindings,)

        while not cursor.exhausted:
            token = cursor.peek()
            if token in helpers:
                return self._help(bindings, owner, helpers)

            if binding := self._lookup(pending, token):
                pending.remove(binding)
                if (usage := self._bind(instance, binding, cursor, scope)) is not None:
                    return usage
                continue

            if self._lookup(bindings, token):
                raise self._duplicated(token, cursor)
            if any(self._lookup(level, token) for level in ancestors):
                break
            if token == self._separator or self._dashed(token):
                raise self._unknown(token, cursor, bindings)

            if leaf := next((binding for binding in pending if not binding.nested), None):
                pending.remove(leaf)
                self._positional(instance, leaf, cursor)
                continue
            if owner is not None:
                # Leftover words may still be positional values of an ancestor.
                break
            raise self._unknown(token, cursor, bindings)

        for binding in pending:
            self._absent(instance, binding)
        return None

    def _strict(self, instance, bindings, cursor, ancestors, owner):
        helpers = self._helpers(bindings)
        scope = ancestors + (bindings,)

        for position, binding in enumerate(bindings):
            token = cursor.peek()
            if token is None:
                self._absent(instance, binding)
                continue
            if token in helpers:
                return self._help(bindings, owner, helpers)

            if binding.matches(token, self._separator):
                if (usage := self._bind(instance, binding, cursor, scope)) is not None:
                    return usage
                continue

            if any(self._lookup(level, token) for level in ancestors):
                self._absent(instance, binding)
                continue
            if other := self._lookup(bindings, token):
                if bindings.index(other) < position:
                    raise self._duplicated(token, cursor)
                raise self._disordered(binding, token, cursor)
            if not binding.nested and not self._flagish(token, scope):
                self._positional(instance, binding, cursor)
                continue
            raise self._unknown(token, cursor, bindings)

        if cursor.peek() in helpers:
            return self._help(bindings, owner, helpers)
        return None

    def _bind(self, instance, binding, cursor, scope):
        logger.debug("matched %s at %s position", binding.label, _ordinal(cursor.index + 1))
        cursor.advance()

        if binding.nested:
            nested = binding.type()
            setattr(instance, binding.field, nested)
            if (usage := self._descend(nested, binding.children, cursor, scope, binding)) is not None:
                return usage
        else:
            raw = self._value(binding, cursor, scope)
            if raw is Unset:
                return None
            setattr(instance, binding.field, convert(binding, raw))

        if self._execute:
            self._run(instance, binding)
        return None

    def _value(self, binding, cursor, scope):
        """
        Consume the raw value following a matched leaf binding.

        Returns
        - str: the value ('' for an explicit empty inline value).
        - None: no value (booleans mean True; others fail in convert()).
        - Unset: a help token stands where the value should be; nothing is assigned.
        """
        if cursor.peek() == self._separator:
            cursor.advance()
            token = cursor.peek()
            if token is None or self._known(token, scope):
                return ""
            cursor.advance()
            return token

        if binding.kind is Kind.BOOLEAN:
            return None

        token = cursor.peek()
        if token is not None and token in self._helpers(scope[-1]):
            return Unset
        if token is None or self._flagish(token, scope):
            return None
        cursor.advance()
        return token

    def _positional(self, instance, binding, cursor):
        position = cursor.index + 1
        token = cursor.pop()
        logger.debug("assigning positional %r at %s position to %s", token, _ordinal(position), binding.label)
        setattr(instance, binding.field, convert(binding, token))
        if self._execute:
            self._run(instance, binding)

    def _absent(self, instance, binding):
        if binding.required:
            raise self._missing(binding)
        if binding.kind is Kind.BOOLEAN and binding.invert:
            logger.debug("defaulting inverted %s to true", binding.label)
            setattr(instance, binding.field, True)

    def _run(self, instance, binding):
        results = []
        for executor in binding.executors:
            callback = executor.resolve(instance)
            logger.debug("running executor %r of %s", executor.callback, binding.label)
            try:
                result = executor.invoke(callback, getattr(instance, binding.field))
            except BindingException:
                raise
            except Exception as exception:
                raise DelegatedExecutorError(
                    "executor of argument %r failed: %s" % (binding.name, exception),
                    title="executor failed",
                    code=FaultCode.DELEGATED_ERROR,
                    hint="the error was raised by the callback bound to %s" % binding.name,
                    argument=binding.name,
                    docs=getdoc(FaultCode.DELEGATED_ERROR),
                ) from exception
            if executor.assign:
                setattr(instance, binding.field, result)
            results.append(result)
        return results

    def _walk(self, instance, bindings, results):
        for binding in bindings:
            value = getattr(instance, binding.field)
            if value is None or (binding.kind is Kind.BOOLEAN and bool(value) == binding.invert):
                continue
            if binding.nested:
                self._walk(value, binding.children, results)
            results.extend(self._run(instance, binding))

    def _helpers(self, bindings):
        if not self._auto_help:
            return ()
        return tuple(name for name in HELPERS if not self._lookup(bindings, name))

    def _help(self, bindings, owner, helpers):
        path = []
        parent = owner
        while parent is not None:
            path.append(parent.name)
            parent = parent.parent
        prog = " ".join([self.prog, *reversed(path)])
        logger.debug("help requested for %s", prog)

        descr = owner.descr if owner is not None else self._descr
        return render(
            bindings,
            prog=prog,
            descr=descr,
            separator=self._separator,
            helpers=helpers,
            colorful=self._colorful,
        )

    def _lookup(self, bindings, token):
        return next((binding for binding in bindings if binding.matches(token, self._separator)), None)

    def _known(self, token, scope):
        if self._auto_help and token in HELPERS:
            return True
        return any(self._lookup(level, token) for level in scope)

    def _dashed(self, token):
        return len(token) > 1 and token.startswith("-") and not _numeric(token)

    def _flagish(self, token, scope):
        return token == self._separator or self._dashed(token) or self._known(token, scope)

    def _hint(self, suggestion=None):
        if suggestion is not None and self._auto_help:
            return "did you mean %r? you can also run '%s --help' to see all arguments" % (suggestion, self.prog)
        if suggestion is not None:
            return "did you mean %r?" % suggestion
        if self._auto_help:
            return "try '%s --help' to see all available arguments" % self.prog
        return "check the spelling of the argument"

    def _unknown(self, token, cursor, bindings):
        key = token.partition(self._separator)[0] or token
        suggestions = difflib.get_close_matches(key, [name for binding in bindings for name in binding.names], 5)
        return UnknownArgumentError(
            "unknown argument %r at %s position" % (key, _ordinal(cursor.index + 1)),
            title="unknown argument",
            code=FaultCode.UNKNOWN_ARGUMENT,
            hint=self._hint(next(iter(suggestions), None)),
            argument=key,
            suggestions=suggestions,
            index=cursor.index + 1,
            docs=getdoc(FaultCode.UNKNOWN_ARGUMENT),
        )

    def _duplicated(self, token, cursor):
        key = token.partition(self._separator)[0]
        return DuplicatedArgumentError(
            "argument %r at %s position was already provided" % (key, _ordinal(cursor.index + 1)),
            title="duplicated argument",
            code=FaultCode.DUPLICATED_ARGUMENT,
            hint="remove the repeated %s" % key,
            argument=key,
            index=cursor.index + 1,
            docs=getdoc(FaultCode.DUPLICATED_ARGUMENT),
        )

    def _disordered(self, binding, token, cursor):
        key = token.partition(self._separator)[0]
        return IncorrectArgumentOrderError(
            "expected %s but received %r at %s position" % (binding.label, key, _ordinal(cursor.index + 1)),
            title="incorrect argument order",
            code=FaultCode.INCORRECT_ARGUMENT_ORDER,
            hint="pass the arguments in their declared order (see '%s --help')" % self.prog,
            argument=key,
            expected=binding.label,
            received=key,
            index=cursor.index + 1,
            docs=getdoc(FaultCode.INCORRECT_ARGUMENT_ORDER),
        )

    def _missing(self, binding):
        return MissingRequiredArgumentError(
            "missing required argument %s" % binding.qualname,
            title="missing required argument",
            code=FaultCode.MISSING_REQUIRED_ARGUMENT,
            hint="add %s to the command line" % binding.name,
            argument=binding.label,
            docs=getdoc(FaultCode.MISSING_REQUIRED_ARGUMENT),
        )


def parse(schema, prompt=Unset, /):
    """
    Parse prompt against schema in one call.

    Equivalent to Controller(schema).parse(prompt); the binding tree is cached
    per schema, so repeated calls do not re-extract it.
    """
    return Controller(schema).parse(prompt)


__all__ = (
    "Controller",
    "Result",
    "parse",
)
