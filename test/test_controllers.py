# python
"""
Parsing engine behavioral tests.

Scope
- Out-of-order parsing: inline and spaced values, presence-only booleans,
  positional fallback, nested sub-commands, ancestor hand-back.
- Strict (respect_order) parsing: order and duplicate faults.
- Requiredness, inversion defaults, help interception at every level.
- Executors during parsing and through Controller.execute().
- Fault redirection (fallback sink, shell mode) and prompt forms.

Conventions
- Test method names follow CamelCase per project convention.
- Schemas are declared at module level so string annotations resolve.
"""

from __future__ import annotations

import io
import unittest
from dataclasses import dataclass
from unittest import TestCase, mock

from rich.console import Console

from hawser import (
    Controller,
    DelegatedExecutorError,
    DuplicatedArgumentError,
    IncorrectArgumentOrderError,
    Int16,
    InvalidArgumentTypeError,
    MissingControllerError,
    MissingRequiredArgumentError,
    MissingValueError,
    Result,
    UnknownArgumentError,
    argument,
    controller,
    executor,
    parse,
)

calls = []


def record(value):
    calls.append(value)
    return value


def explode(value):
    raise ValueError("boom %s" % value)


@dataclass
class Start:
    url: str = argument("-u", "--url", descr="service url", required=True)
    port: Int16 = argument("-p", "--port", default=8080)


@controller(name="tool", descr="demo tool")
@dataclass
class Args:
    name: str = argument("-n", "--name", descr="user name", required=True)
    verbose: bool = argument("-v", "--verbose", descr="chatty output", default=False)
    start: Start | None = argument("start", descr="start the service")


@controller(respect_order=True)
@dataclass
class Ordered:
    first: str = argument("-a", "--first")
    second: str = argument("-b", "--second")


@controller
@dataclass
class Toggles:
    gui: bool = argument("--no-gui", invert=True)
    count: Int16 = argument("-c", "--count")


@controller(execute=True)
@dataclass
class Hooks:
    message: str = argument("-m", "--message", executors=[executor(str.strip, assign=True), executor(str.upper, assign=True)])
    greeting: str = argument("-g", executors=[executor("greet", assign=True)])
    ping: bool = argument("-p", executors=[executor(lambda: record("ping"), nullary=True)])
    fail: str = argument("-f", executors=[explode])

    def greet(self, value):
        return "hello %s" % value


@dataclass
class Deploy:
    target: str = argument("-t", executors=[record])


@controller(execute=True)
@dataclass
class NestedHooks:
    deploy: Deploy = argument("deploy", executors=[executor(lambda: record("deployed"), nullary=True)])


@controller
@dataclass
class Deferred:
    message: str = argument("-m", executors=[record])
    quiet: bool = argument("-q", executors=[executor(lambda: record("quiet"), nullary=True)])
    loud: bool = argument("-l", executors=[executor(lambda: record("loud"), nullary=True)])


@controller
@dataclass
class Windowed:
    gui: bool = argument("--no-gui", invert=True, executors=[executor(lambda: record("headless"), nullary=True)])


@controller(execute=True)
@dataclass
class WindowedNow:
    gui: bool = argument("--no-gui", invert=True, executors=[executor(lambda: record("headless"), nullary=True)])


@controller(execute=True)
@dataclass
class Misnamed:
    message: str = argument("-m", executors=[executor("missing")])


@controller(auto_help=False)
@dataclass
class Helpless:
    host: str = argument("-h", "--host")


@controller(shell=True)
@dataclass
class Shell:
    name: str = argument("-n", required=True)


@dataclass
class Unmarked:
    name: str = argument("-n")


class TestRelaxedParsing(TestCase):

    def testInlineValueAndFlag(self):
        result = parse(Args, "-n=John -v")
        self.assertIsInstance(result, Result)
        self.assertEqual(result.instance.name, "John")
        self.assertIs(result.instance.verbose, True)
        self.assertIsNone(result.instance.start)
        self.assertIsNone(result.usage)
        self.assertFalse(result.helped)

    def testSpacedValueAnyOrder(self):
        result = parse(Args, '-v --name "John Smith"')
        self.assertEqual(result.instance.name, "John Smith")
        self.assertTrue(result.instance.verbose)

    def testExplicitEmptyValue(self):
        self.assertEqual(parse(Args, "--name= -v").instance.name, "")

    def testPositionalFallback(self):
        self.assertEqual(parse(Args, "John -v").instance.name, "John")

    def testMissingRequired(self):
        with self.assertRaises(MissingRequiredArgumentError) as context:
            parse(Args, "-v")
        self.assertEqual(context.exception.argument, "-n, --name")

    def testNestedSubCommand(self):
        instance = parse(Args, "-n=John start -u=http://x").instance
        self.assertIsInstance(instance.start, Start)
        self.assertEqual(instance.start.url, "http://x")
        self.assertEqual(instance.start.port, 8080)

    def testAncestorTokenEndsNestedLevel(self):
        instance = parse(Args, "start -u=http://x -p=81 -n=John").instance
        self.assertEqual(instance.name, "John")
        self.assertEqual(instance.start.port, 81)

    def testNestedRequiredOnlyWhenEntered(self):
        self.assertIsNone(parse(Args, "-n=John").instance.start)
        with self.assertRaises(MissingRequiredArgumentError) as context:
            parse(Args, "-n=John start")
        self.assertEqual(context.exception.argument, "-u, --url")

    def testUnknownArgument(self):
        with self.assertRaises(UnknownArgumentError) as context:
            parse(Args, "-n=John --unknown=1")
        self.assertEqual(context.exception.argument, "--unknown")

    def testUnknownSuggestsCloseNames(self):
        with self.assertRaises(UnknownArgumentError) as context:
            parse(Args, "-n=John --verbos")
        self.assertIn("--verbose", context.exception.suggestions)

    def testLeftoverWordAtRoot(self):
        with self.assertRaises(UnknownArgumentError) as context:
            parse(Args, "-n=John -v extra")
        self.assertEqual(context.exception.argument, "extra")

    def testDuplicatedArgument(self):
        with self.assertRaises(DuplicatedArgumentError) as context:
            parse(Args, "-n=John --name=Jane")
        self.assertEqual(context.exception.argument, "--name")

    def testMissingValue(self):
        with self.assertRaises(MissingValueError):
            parse(Args, "-v -n")
        with self.assertRaises(MissingValueError):
            parse(Args, "-n -v")

    def testNegativeNumberIsAValue(self):
        self.assertEqual(parse(Args, "-n=x start -u=y -p -5").instance.start.port, -5)

    def testInvalidValue(self):
        with self.assertRaises(InvalidArgumentTypeError):
            parse(Args, "-n=John start -u=x -p=99999")

    def testInvertedBooleanDefaultsToTrue(self):
        self.assertIs(parse(Toggles, "").instance.gui, True)
        self.assertIs(parse(Toggles, "--no-gui").instance.gui, False)

    def testArgvPrompt(self):
        instance = parse(Args, ["-n", "John Smith", "--verbose"]).instance
        self.assertEqual(instance.name, "John Smith")
        self.assertTrue(instance.verbose)
        self.assertEqual(parse(Args, ["--name=a=b"]).instance.name, "a=b")

    def testSeparatorInsideStringValueIsRejected(self):
        with self.assertRaises(UnknownArgumentError) as context:
            parse(Args, "-n=a=b")
        self.assertEqual(context.exception.argument, "=")
        self.assertEqual(parse(Args, '-n="a=b"').instance.name, "a=b")

    def testInvalidPromptRejected(self):
        with self.assertRaises(TypeError):
            parse(Args, 42)

    def testMissingController(self):
        with self.assertRaises(MissingControllerError):
            parse(Unmarked, "-n=x")


class TestStrictParsing(TestCase):

    def testDeclaredOrderAccepted(self):
        instance = parse(Ordered, "-a=1 -b=2").instance
        self.assertEqual((instance.first, instance.second), ("1", "2"))

    def testTrailingArgumentsMayBeAbsent(self):
        instance = parse(Ordered, "-a=1").instance
        self.assertIsNone(instance.second)

    def testIncorrectOrder(self):
        with self.assertRaises(IncorrectArgumentOrderError) as context:
            parse(Ordered, "-b=2 -a=1")
        self.assertEqual(context.exception.expected, "-a, --first")
        self.assertEqual(context.exception.received, "-b")

    def testDuplicated(self):
        with self.assertRaises(DuplicatedArgumentError):
            parse(Ordered, "-a=1 -a=2")

    def testPositionalInOrder(self):
        instance = parse(Ordered, "1 2").instance
        self.assertEqual((instance.first, instance.second), ("1", "2"))


class TestHelp(TestCase):

    def testHelpBeforeRequiredCheck(self):
        result = parse(Args, "--help")
        self.assertTrue(result.helped)
        self.assertTrue(result.usage.startswith("usage: "))
        self.assertIn("-n, --name", result.usage)

    def testHelpAfterOtherArguments(self):
        result = parse(Args, "-v -h")
        self.assertTrue(result.helped)
        self.assertTrue(result.instance.verbose)

    def testHelpInValuePosition(self):
        result = parse(Args, "-n --help")
        self.assertTrue(result.helped)
        self.assertIsNone(result.instance.name)

    def testNestedHelpRendersNestedLevel(self):
        result = parse(Args, "start -h")
        self.assertTrue(result.helped)
        self.assertIn("start", result.usage.splitlines()[0])
        self.assertIn("-u, --url", result.usage)
        self.assertNotIn("-n, --name", result.usage)

    def testStrictHelp(self):
        self.assertTrue(parse(Ordered, "-a=1 --help").helped)

    def testHelpDisabled(self):
        self.assertEqual(parse(Helpless, "-h=localhost").instance.host, "localhost")
        self.assertNotIn("--help", Controller(Helpless).usage().plain)


class TestExecutors(TestCase):

    def setUp(self):
        calls.clear()

    def testChainWritesBackInOrder(self):
        self.assertEqual(parse(Hooks, '-m=" hi "').instance.message, "HI")

    def testMethodNameExecutor(self):
        self.assertEqual(parse(Hooks, "-g=bob").instance.greeting, "hello bob")

    def testNullaryExecutor(self):
        parse(Hooks, "-p")
        self.assertEqual(calls, ["ping"])

    def testNotRunWhenAbsent(self):
        parse(Hooks, "-m=x")
        self.assertEqual(calls, [])

    def testNestedExecutorRunsAfterChildren(self):
        parse(NestedHooks, "deploy -t=prod")
        self.assertEqual(calls, ["prod", "deployed"])

    def testFailureIsDelegated(self):
        with self.assertRaises(DelegatedExecutorError) as context:
            parse(Hooks, "-f=x")
        self.assertIsInstance(context.exception.__cause__, ValueError)
        self.assertEqual(context.exception.argument, "-f")

    def testNotRunWhileParsingByDefault(self):
        parse(Deferred, "-m=x -q")
        self.assertEqual(calls, [])

    def testExecuteAfterParsing(self):
        tool = Controller(Deferred)
        instance = tool.parse("-m=x -q").instance
        self.assertEqual(tool.execute(instance), ["x", "quiet"])
        self.assertEqual(calls, ["x", "quiet"])

    def testInvertedFlagRunsOnlyWhenGiven(self):
        parse(WindowedNow, "--no-gui")
        parse(WindowedNow, "")
        self.assertEqual(calls, ["headless"])

        tool = Controller(Windowed)
        self.assertEqual(tool.execute(tool.parse("--no-gui").instance), ["headless"])
        self.assertEqual(tool.execute(tool.parse("").instance), [])
        self.assertEqual(calls, ["headless", "headless"])

    def testMissingMethodIsNotDelegated(self):
        with self.assertRaises(TypeError):
            parse(Misnamed, "-m=x")

    def testExecuteRejectsForeignInstance(self):
        with self.assertRaises(TypeError):
            Controller(Deferred).execute(object())


class TestRedirection(TestCase):

    def testFallbackReceivesFault(self):
        faults = []
        tool = Controller(Args)
        tool.fallback(faults.append)
        result = tool.parse("-v")
        self.assertIsNone(result.instance)
        self.assertIsNone(result.usage)
        self.assertIsInstance(result.fault, MissingRequiredArgumentError)
        self.assertEqual(faults, [result.fault])
        self.assertIs(result.fault.options["tool"], tool)

    def testFallbackCannotBeOverridden(self):
        tool = Controller(Args)
        tool.fallback(print)
        with self.assertRaises(TypeError):
            tool.fallback(print)

    def testFallbackMustBeCallable(self):
        with self.assertRaises(TypeError):
            Controller(Args).fallback("sink")

    def testShellPrintsInsteadOfRaising(self):
        stream = io.StringIO()
        with mock.patch("hawser.faults.console", Console(file=stream, width=120)):
            result = parse(Shell, "")
        self.assertIsInstance(result.fault, MissingRequiredArgumentError)
        self.assertIn("missing required argument", stream.getvalue())

    def testControllerProperties(self):
        tool = Controller(Args)
        self.assertEqual(tool.name, "tool")
        self.assertEqual(tool.descr, "demo tool")
        self.assertFalse(tool.respect_order)
        self.assertEqual(Controller(Ordered).name, "ordered")


if __name__ == "__main__":
    unittest.main()
