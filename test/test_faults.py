# python
"""
Fault behavioral tests.

Scope
- FaultCode normalization and documentation lookup.
- BindingException options, rich rendering (plain and fancy), replacement.
- trigger(): raising outside shell mode, printing inside it.
"""

from __future__ import annotations

import io
import unittest
from unittest import TestCase, mock

from rich.console import Console

from hawser import (
    BindingException,
    FaultCode,
    MissingValueError,
    UnknownArgumentError,
    getdoc,
    trigger,
)


def render(fault, width=120):
    stream = io.StringIO()
    Console(file=stream, width=width).print(fault)
    return stream.getvalue()


def missing(**options):
    return MissingValueError(
        "no value found for argument '--name'",
        title="missing value",
        code=FaultCode.MISSING_VALUE,
        hint="pass a value after --name",
        argument="--name",
        **options,
    )


class TestFaultCode(TestCase):

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.MISSING_VALUE.normalize(), "11202")

    def testNormalizeHonorsHostCodes(self):
        main = __import__("__main__")
        with mock.patch.object(main, "__codes__", {FaultCode.MISSING_VALUE: "E-VALUE"}, create=True):
            self.assertEqual(FaultCode.MISSING_VALUE.normalize(), "E-VALUE")

    def testGetdoc(self):
        self.assertIsNone(getdoc(FaultCode.UNKNOWN_ARGUMENT))
        main = __import__("__main__")
        with mock.patch.object(main, "__docs__", {FaultCode.UNKNOWN_ARGUMENT: "see docs"}, create=True):
            self.assertEqual(getdoc(FaultCode.UNKNOWN_ARGUMENT), "see docs")

    def testGetdocRejectsPlainIntegers(self):
        with self.assertRaises(TypeError):
            getdoc(11202)


class TestBindingException(TestCase):

    def testOptionsAreReadOnly(self):
        fault = missing()
        self.assertEqual(fault.argument, "--name")
        self.assertIs(fault.code, FaultCode.MISSING_VALUE)
        with self.assertRaises(TypeError):
            fault.options["argument"] = "--other"

    def testRenderPlain(self):
        output = render(missing())
        self.assertIn("[ hawser - 11202 | Missing Value ]", output)
        self.assertIn("no value found for argument '--name'", output)
        self.assertIn("pass a value after --name", output)

    def testRenderFancyUsesPanel(self):
        output = render(missing(fancy=True))
        self.assertIn("Missing Value", output)
        self.assertIn("╭", output)

    def testReplaceMergesOptionsAndKeepsCause(self):
        fault = missing()
        fault.__cause__ = ValueError("root")
        copy = fault.__replace__(shell=True)
        self.assertIsInstance(copy, MissingValueError)
        self.assertEqual(copy.message, fault.message)
        self.assertTrue(copy.options["shell"])
        self.assertEqual(copy.argument, "--name")
        self.assertIs(copy.__cause__, fault.__cause__)
        self.assertNotIn("shell", fault.options)

    def testSuggestionsDefaultEmpty(self):
        self.assertEqual(UnknownArgumentError("unknown").suggestions, ())


class TestTrigger(TestCase):

    def testRaisesOutsideShell(self):
        with self.assertRaises(MissingValueError):
            trigger(missing())

    def testPrintsInShell(self):
        stream = io.StringIO()
        with mock.patch("hawser.faults.console", Console(file=stream, width=120)):
            trigger(missing(), shell=True)
        self.assertIn("Missing Value", stream.getvalue())

    def testRejectsNonTriggerable(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("x"))

    def testBaseExceptionWithoutMessage(self):
        fault = BindingException()
        self.assertEqual(fault.args, ())
        self.assertIsNone(fault.code)


if __name__ == "__main__":
    unittest.main()
