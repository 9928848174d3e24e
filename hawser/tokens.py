"""
Hawser tokenizer: turn a raw argument line (or vector) into binding tokens.

Discipline
- The configured separator is always emitted as a standalone token when it
  appears outside double quotes: 'arg=value' -> ['arg', '=', 'value'].
- Whitespace splits tokens except inside double-quoted spans; the quotes are
  stripped and the enclosed text (whitespace included) is kept verbatim.
- There is no escaping of embedded quotes. An unterminated quote runs to the
  end of the input.
- Pre-split vectors (sys.argv-like) are split at the first separator of each
  element only, so values may themselves contain the separator.

Cursor
- A monotonic read position over a token tuple, shared by every level of a
  single parse. It is never rewound.
"""
import logging

logger = logging.getLogger(__name__)

QUOTE = '"'


def validate_separator(separator, /):
    """
    Ensure a separator is a single, printable, non-quote character.

    Raises
    - TypeError: when separator is not a string.
    - ValueError: when separator is not exactly one character, or is the null
      character, whitespace, or a double quote.
    """
    if not isinstance(separator, str):
        raise TypeError("separator must be a string")
    if len(separator) != 1:
        raise ValueError("separator must be a single character")
    if separator == "\0":
        raise ValueError("separator cannot be the null character")
    if separator.isspace() or separator == QUOTE:
        raise ValueError("separator cannot be whitespace or a double quote")
    return separator


def tokenize(source, /, separator="="):
    """
    Split a command line string into tokens.

    Examples
    - tokenize('--name=John -v')            -> ['--name', '=', 'John', '-v']
    - tokenize('arg= "multiple   spaces"')  -> ['arg', '=', 'multiple   spaces']
    - tokenize('--arg="some=value"')        -> ['--arg', '=', 'some=value']
    - tokenize('arg==value')                -> ['arg', '=', '=', 'value']
    - tokenize('   ')                       -> []
    """
    if not isinstance(source, str):
        raise TypeError("tokenize() argument must be a string")
    validate_separator(separator)

    tokens = []
    buffer = []
    quoted = False
    # A quoted span opens a token even when it ends up empty ('""').
    pending = False

    def flush():
        nonlocal pending
        if pending:
            tokens.append("".join(buffer))
        buffer.clear()
        pending = False

    for char in source:
        if char == QUOTE:
            quoted = not quoted
            pending = True
        elif quoted:
            buffer.append(char)
        elif char.isspace():
            flush()
        elif char == separator:
            flush()
            tokens.append(separator)
        else:
            buffer.append(char)
            pending = True
    flush()

    logger.debug("tokenized %r into %s", source, tokens)
    return tokens


def tokenize_argv(argv, /, separator="="):
    """
    Normalize a pre-split argument vector into tokens.

    Each element holding the separator is split at its first occurrence into
    key, separator and remainder (the remainder is kept even when empty, so an
    explicit 'key=' yields an empty value). Other elements pass through verbatim.

    Raises
    - TypeError: when argv is a string or contains non-string items.
    """
    if isinstance(argv, str):
        raise TypeError("tokenize_argv() argument must be an iterable of strings")
    validate_separator(separator)

    tokens = []
    for item in argv:
        if not isinstance(item, str):
            raise TypeError("tokenize_argv() argument must be an iterable of strings")
        key, found, rest = item.partition(separator)
        if not found:
            tokens.append(item)
            continue
        if key:
            tokens.append(key)
        tokens.append(separator)
        tokens.append(rest)

    logger.debug("tokenized vector %s into %s", argv, tokens)
    return tokens


class Cursor:
    """Forward-only read position over a token sequence."""

    __slots__ = ("_tokens", "_index")

    def __init__(self, tokens, /):
        self._tokens = tuple(tokens)
        self._index = 0

    @property
    def tokens(self):
        return self._tokens

    @property
    def index(self):
        return self._index

    @property
    def exhausted(self):
        return self._index >= len(self._tokens)

    def peek(self, offset=0, /):
        """Return the token at the current position (plus offset), or None past the end."""
        try:
            return self._tokens[self._index + offset]
        except IndexError:
            return None

    def advance(self, count=1, /):
        self._index = min(self._index + count, len(self._tokens))

    def pop(self):
        if self.exhausted:
            raise IndexError("pop from an exhausted cursor")
        token = self._tokens[self._index]
        self._index += 1
        return token

    def __repr__(self):
        return f"cursor(index={self._index}, tokens={self._tokens!r})"


__all__ = (
    "tokenize",
    "tokenize_argv",
    "validate_separator",
    "Cursor",
)
