"""
Hawser usage rendering.

render() walks one level of a binding tree and produces a rich Text made of
- a usage line synthesized from the level ('usage: tool -n=<name> [-v] [start ...]'),
- an optional description paragraph,
- a 'required arguments' section and an 'optional arguments' section, each
  entry padded to COLUMN before its description,
- the children of nested bindings listed under their parent, indented by
  INDENT per depth and labelled with their qualified names.

Palette keys
- usage-label, program-name, usage-section, description-section
- group-label, argument-name, nested-name, argument-description, required-marker

Customization
- Define a mapping named __styles__ in __main__ to override any palette entry.
- When colorful is False, styling is suppressed.
"""
import re
from collections import defaultdict

from rich.text import Text

from .conversions import Kind
from .utils import *

HELPERS = ("-h", "--help")

PADDING = 2
INDENT = 4
COLUMN = 32


def _metavar(binding, /):
    return "<%s>" % re.sub(r"_+", "-", binding.field.lower().strip("_"))


def render(bindings, /, *, prog=Unset, descr=Unset, separator="=", helpers=HELPERS, colorful=False):
    """
    Render usage text for one level of bindings.

    Parameters
    - bindings: Iterable[Binding] for the level (declaration order is kept).
    - prog: Unset | str. Program (and sub-command) path shown on the usage line.
    - descr: Unset | str | None. Paragraph shown under the usage line.
    - separator: str. Used to show value-bearing arguments ('-n=<name>').
    - helpers: names of the synthesized help argument; empty to omit it.
    - colorful: apply the palette.

    Returns
    - rich.text.Text (use .plain for the unstyled string).
    """
    bindings = tuple(bindings)
    styles = defaultdict(str, {
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "bold #36C5F0",
        "description-section": "italic #A3A3A3",
        "group-label": "bold #FFFFFF",
        "argument-name": "bold #00E6FF",
        "nested-name": "bold #22C55E",
        "argument-description": "#9CA3AF",
        "required-marker": "#FFD600",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def synopsis(binding):
        if binding.kind is Kind.NESTED:
            item = f"{binding.name} ..."
        elif binding.kind is Kind.BOOLEAN:
            item = binding.names[0]
        else:
            item = f"{binding.names[0]}{separator}{_metavar(binding)}"
        return item if binding.required else f"[{item}]"

    usage = Text()
    usage.append("usage", styler("usage-label")).append(": ")
    if prog := coalesce(prog):
        usage.append(prog, styler("program-name")).append(" ")
    items = ([f"[{helpers[0]}]"] if helpers else []) + [synopsis(binding) for binding in bindings]
    usage.append(" ".join(items), styler("usage-section"))
    usage.rstrip()

    renders = [usage]

    if descr := coalesce(descr):
        renders.append(Text(descr, styler("description-section")))

    def entry(label, description, *, depth=0, nested=False, required=False):
        line = Text(" " * (PADDING + INDENT * depth))
        line.append(label, styler("nested-name" if nested else "argument-name"))
        if description or required:
            if len(line) < COLUMN:
                line.append(" " * (COLUMN - len(line)))
            else:
                line.append("\n").append(" " * COLUMN)
            if description:
                line.append(description, styler("argument-description"))
            if required:
                line.append(" (required)" if description else "(required)", styler("required-marker"))
        return line

    def section(title, members, *, helper=False):
        block = Text()
        block.append(title, styler("group-label")).append(":")
        if helper:
            block.append("\n").append_text(entry(", ".join(helpers), "show this help message and exit"))
        for binding in members:
            block.append("\n").append_text(entry(binding.label, binding.descr, nested=binding.nested))
            for line in descendants(binding, 1):
                block.append("\n").append_text(line)
        return block

    def descendants(binding, depth):
        for child in binding.children:
            yield entry(child.qualname, child.descr, depth=depth, nested=child.nested, required=child.required)
            yield from descendants(child, depth + 1)

    required = [binding for binding in bindings if binding.required]
    optional = [binding for binding in bindings if not binding.required]

    if required:
        renders.append(section("required arguments", required))
    if optional or helpers:
        renders.append(section("optional arguments", optional, helper=bool(helpers)))

    return Text("\n\n").join(renders)


__all__ = (
    "render",
)
