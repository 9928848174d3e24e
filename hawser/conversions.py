"""
Hawser value conversion: raw token -> field value.

Targets
- bool: case-insensitive vocabulary (true/false, 1/0, yes/no, y/n); a missing
  value means True. Inversion flips the outcome.
- str: verbatim, empty strings included.
- int family (int, Int16, Int32, Int64): exact integer literal, or a double
  whose fractional part is within TOLERANCE; range-checked against the width.
- float family (float, Float32, Decimal): parsed as a double; Float32 narrows to
  single precision, Decimal keeps the exact literal.
- Enum subclasses: member name (case-insensitive), then the member value's text.

Failures raise InvalidArgumentTypeError, except a missing value for a
non-boolean field, which raises MissingValueError.
"""
import enum
import logging
import math
import struct
from decimal import Decimal, InvalidOperation

from .faults import *

logger = logging.getLogger(__name__)

TOLERANCE = 1e-10


class Kind(enum.Enum):
    """Conversion family of a bound field."""
    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    ENUM = "enum"
    NESTED = "nested"


TRUTHS = frozenset(("true", "1", "yes", "y"))
FALSITIES = frozenset(("false", "0", "no", "n"))


class SizedInteger(int):
    """Base of the fixed-width signed integers; construction is range-checked."""
    __bits__ = 64

    def __new__(cls, value=0, /):
        self = super().__new__(cls, value)
        if not cls.min() <= self <= cls.max():
            raise OverflowError(f"{int(self)} does not fit in {cls.__name__}")
        return self

    @classmethod
    def min(cls):
        return -(1 << (cls.__bits__ - 1))

    @classmethod
    def max(cls):
        return (1 << (cls.__bits__ - 1)) - 1

    def __repr__(self):
        return f"{type(self).__name__}({int(self)})"


class Int16(SizedInteger):
    __bits__ = 16


class Int32(SizedInteger):
    __bits__ = 32


class Int64(SizedInteger):
    __bits__ = 64


class Float32(float):
    """Single-precision float: the value is rounded through a 4-byte IEEE 754 representation."""

    def __new__(cls, value=0.0, /):
        try:
            narrowed, = struct.unpack("f", struct.pack("f", float(value)))
        except OverflowError:
            raise OverflowError(f"{value!r} does not fit in {cls.__name__}") from None
        return super().__new__(cls, narrowed)

    def __repr__(self):
        return f"{type(self).__name__}({float(self)!r})"


def typename(target, /):
    """Human-friendly name of a conversion target, used in fault messages."""
    if target is bool:
        return "boolean"
    if issubclass(target, SizedInteger):
        return f"{target.__bits__}-bit integer"
    if target is int:
        return "integer"
    if target is Float32:
        return "single-precision number"
    if target is float:
        return "number"
    if target is Decimal:
        return "decimal number"
    if isinstance(target, type) and issubclass(target, enum.Enum):
        return "one of %s" % ", ".join(member.name.lower() for member in target)
    return "string"


def _invalid(binding, raw, /):
    expected = typename(binding.type)
    return InvalidArgumentTypeError(
        "value %r of argument %r is not a valid %s" % (raw, binding.name, expected),
        title="invalid argument type",
        code=FaultCode.INVALID_ARGUMENT_TYPE,
        hint="pass a %s to %s" % (expected, binding.name),
        argument=binding.name,
        expected=expected,
        value=raw,
        docs=getdoc(FaultCode.INVALID_ARGUMENT_TYPE),
    )


def to_boolean(raw, /):
    """
    Interpret a boolean literal.

    Raises
    - ValueError: when raw is not part of the recognized vocabulary.
    """
    match raw.strip().lower():
        case literal if literal in TRUTHS:
            return True
        case literal if literal in FALSITIES:
            return False
        case _:
            raise ValueError(f"unable to interpret {raw!r} as a boolean")


def to_integer(raw, target=int, /):
    """
    Interpret an integer literal for the given integer target.

    Exact integer syntax is tried first so that wide values keep every digit;
    otherwise the text is read as a double and accepted only when its
    fractional part is within TOLERANCE.

    Raises
    - ValueError: not numeric, non-finite, or fractional beyond tolerance.
    - OverflowError: outside the target width.
    """
    try:
        integer = int(raw.strip())
    except ValueError:
        number = float(raw)
        if not math.isfinite(number):
            raise ValueError(f"{raw!r} is not a finite number") from None
        fraction, whole = math.modf(number)
        if abs(fraction) > TOLERANCE:
            raise ValueError(f"{raw!r} has a fractional part") from None
        integer = int(whole)
    return integer if target is int else target(integer)


def to_float(raw, target=float, /):
    """
    Interpret a floating literal for the given floating target.

    Raises
    - ValueError: not numeric.
    - OverflowError: outside the Float32 range.
    """
    number = float(raw)
    if target is Decimal:
        try:
            return Decimal(raw.strip())
        except InvalidOperation:
            raise ValueError(f"{raw!r} is not a decimal number") from None
    return target(number)


def to_enum(raw, target, /):
    """
    Interpret an enum member by name (case-insensitive) or by value text.

    Raises
    - ValueError: when no member matches.
    """
    text = raw.strip()
    for member in target:
        if member.name.lower() == text.lower():
            return member
    for member in target:
        if str(member.value) == text:
            return member
    raise ValueError(f"{raw!r} is not a member of {target.__name__}")


def convert(binding, raw=None, /):
    """
    Convert a raw token into the value to store in binding's field.

    Parameters
    - binding: Binding (leaf). Its kind and type select the conversion.
    - raw: str | None. None means "no value followed the argument".

    Returns
    - The converted value (booleans already account for inversion).

    Raises
    - MissingValueError: raw is None for a non-boolean binding.
    - InvalidArgumentTypeError: raw cannot be converted to the binding's type.
    """
    if binding.kind is Kind.NESTED:
        raise TypeError(f"convert() cannot assign a value to nested argument {binding.name!r}")

    if raw is None:
        if binding.kind is Kind.BOOLEAN:
            return not binding.invert
        raise MissingValueError(
            "no value found for argument %r" % binding.name,
            title="missing value",
            code=FaultCode.MISSING_VALUE,
            hint="pass a value after %s" % binding.name,
            argument=binding.name,
            docs=getdoc(FaultCode.MISSING_VALUE),
        )

    try:
        match binding.kind:
            case Kind.BOOLEAN:
                value = to_boolean(raw) != binding.invert
            case Kind.INTEGER:
                value = to_integer(raw, binding.type)
            case Kind.FLOAT:
                value = to_float(raw, binding.type)
            case Kind.ENUM:
                value = to_enum(raw, binding.type)
            case _:
                value = raw
    except (ValueError, OverflowError):
        raise _invalid(binding, raw) from None

    logger.debug("converted %r for %s into %r", raw, binding.name, value)
    return value


__all__ = (
    "Kind",
    "Int16",
    "Int32",
    "Int64",
    "Float32",
    "convert",
)
