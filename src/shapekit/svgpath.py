"""Handling SVG path data: tokenizing, parsing and number formatting"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, ClassVar, Dict, List, Tuple

from shapekit.common import SvgPathParseError

if TYPE_CHECKING:
    from shapekit.shape import Shape  # pylint: disable=unused-import

logger = logging.getLogger(__name__)


###############################################################################
# Number formatting
###############################################################################
def svg_number(value: float) -> str:
    """
    Format a number for SVG path data.

    Integral values are written without decimals, everything else uses the
    shortest representation that reads back to the same float.

    Args:
        value (float): the number to format

    Returns:
        str: the formatted number
    """
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Cannot write non-finite number {value} into SVG path data")
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


###############################################################################
# Commands
###############################################################################
class SvgCommand(Enum):
    """
    SVG path commands; uppercase = absolute coordinates; lowercase = relative.
    Commands (command : number of values : command-character):
        MoveTo:           2: Mm
        LineTo:           2: Ll   1: Hh(x)   1:Vv(y)
        CubicBezier:      6: Cc   4: Ss
        QuadraticBezier:  4: Qq   2: Tt
        ArcCurve:         7: Aa
        ClosePath:        0: Zz
    """

    MOVE_TO = "M"
    MOVE_TO_RELATIVE = "m"
    LINE_TO = "L"
    LINE_TO_RELATIVE = "l"
    HORIZONTAL_LINE_TO = "H"
    HORIZONTAL_LINE_TO_RELATIVE = "h"
    VERTICAL_LINE_TO = "V"
    VERTICAL_LINE_TO_RELATIVE = "v"
    CUBIC_CURVE_TO = "C"
    CUBIC_CURVE_TO_RELATIVE = "c"
    SMOOTH_CUBIC_CURVE_TO = "S"
    SMOOTH_CUBIC_CURVE_TO_RELATIVE = "s"
    QUADRATIC_CURVE_TO = "Q"
    QUADRATIC_CURVE_TO_RELATIVE = "q"
    SMOOTH_QUADRATIC_CURVE_TO = "T"
    SMOOTH_QUADRATIC_CURVE_TO_RELATIVE = "t"
    ELLIPTICAL_ARC_TO = "A"
    ELLIPTICAL_ARC_TO_RELATIVE = "a"
    CLOSE = "Z"
    CLOSE_RELATIVE = "z"


@dataclass(frozen=True)
class SvgCommandInfo:
    """Metadata for SVG path commands.

    Attributes:
        num_args: Number of numeric arguments per repetition of the command
        flag_indices: Argument positions that are single-character flags (arcs)
    """

    num_args: int
    flag_indices: Tuple[int, ...] = ()


COMMAND_INFO: Dict[SvgCommand, SvgCommandInfo] = {
    SvgCommand.MOVE_TO: SvgCommandInfo(2),
    SvgCommand.MOVE_TO_RELATIVE: SvgCommandInfo(2),
    SvgCommand.LINE_TO: SvgCommandInfo(2),
    SvgCommand.LINE_TO_RELATIVE: SvgCommandInfo(2),
    SvgCommand.HORIZONTAL_LINE_TO: SvgCommandInfo(1),
    SvgCommand.HORIZONTAL_LINE_TO_RELATIVE: SvgCommandInfo(1),
    SvgCommand.VERTICAL_LINE_TO: SvgCommandInfo(1),
    SvgCommand.VERTICAL_LINE_TO_RELATIVE: SvgCommandInfo(1),
    SvgCommand.CUBIC_CURVE_TO: SvgCommandInfo(6),
    SvgCommand.CUBIC_CURVE_TO_RELATIVE: SvgCommandInfo(6),
    SvgCommand.SMOOTH_CUBIC_CURVE_TO: SvgCommandInfo(4),
    SvgCommand.SMOOTH_CUBIC_CURVE_TO_RELATIVE: SvgCommandInfo(4),
    SvgCommand.QUADRATIC_CURVE_TO: SvgCommandInfo(4),
    SvgCommand.QUADRATIC_CURVE_TO_RELATIVE: SvgCommandInfo(4),
    SvgCommand.SMOOTH_QUADRATIC_CURVE_TO: SvgCommandInfo(2),
    SvgCommand.SMOOTH_QUADRATIC_CURVE_TO_RELATIVE: SvgCommandInfo(2),
    SvgCommand.ELLIPTICAL_ARC_TO: SvgCommandInfo(7, flag_indices=(3, 4)),
    SvgCommand.ELLIPTICAL_ARC_TO_RELATIVE: SvgCommandInfo(7, flag_indices=(3, 4)),
    SvgCommand.CLOSE: SvgCommandInfo(0),
    SvgCommand.CLOSE_RELATIVE: SvgCommandInfo(0),
}

# Additional coordinate pairs after a moveto are implicit lineto commands
_IMPLICIT_FOLLOWERS: Dict[SvgCommand, SvgCommand] = {
    SvgCommand.MOVE_TO: SvgCommand.LINE_TO,
    SvgCommand.MOVE_TO_RELATIVE: SvgCommand.LINE_TO_RELATIVE,
}


@dataclass(frozen=True)
class SvgPathItem:
    """One parsed command with its arguments."""

    command: SvgCommand
    args: Tuple[float, ...]


###############################################################################
# Handlers
###############################################################################
def _elliptical_arc_args(args: Tuple[float, ...]) -> Tuple[float, float, float, bool, bool, float, float]:
    rx, ry, rotation, large_arc, sweep, x, y = args
    return rx, ry, rotation, bool(large_arc), bool(sweep), x, y


# Each command maps onto exactly one path-building method of Shape
COMMAND_HANDLERS: Dict[SvgCommand, Callable[["Shape", Tuple[float, ...]], object]] = {
    SvgCommand.MOVE_TO: lambda shape, args: shape.move_to(*args),
    SvgCommand.MOVE_TO_RELATIVE: lambda shape, args: shape.move_to_relative(*args),
    SvgCommand.LINE_TO: lambda shape, args: shape.line_to(*args),
    SvgCommand.LINE_TO_RELATIVE: lambda shape, args: shape.line_to_relative(*args),
    SvgCommand.HORIZONTAL_LINE_TO: lambda shape, args: shape.horizontal_line_to(*args),
    SvgCommand.HORIZONTAL_LINE_TO_RELATIVE: lambda shape, args: shape.horizontal_line_to_relative(*args),
    SvgCommand.VERTICAL_LINE_TO: lambda shape, args: shape.vertical_line_to(*args),
    SvgCommand.VERTICAL_LINE_TO_RELATIVE: lambda shape, args: shape.vertical_line_to_relative(*args),
    SvgCommand.CUBIC_CURVE_TO: lambda shape, args: shape.cubic_curve_to(*args),
    SvgCommand.CUBIC_CURVE_TO_RELATIVE: lambda shape, args: shape.cubic_curve_to_relative(*args),
    SvgCommand.SMOOTH_CUBIC_CURVE_TO: lambda shape, args: shape.smooth_cubic_curve_to(*args),
    SvgCommand.SMOOTH_CUBIC_CURVE_TO_RELATIVE: lambda shape, args: shape.smooth_cubic_curve_to_relative(*args),
    SvgCommand.QUADRATIC_CURVE_TO: lambda shape, args: shape.quadratic_curve_to(*args),
    SvgCommand.QUADRATIC_CURVE_TO_RELATIVE: lambda shape, args: shape.quadratic_curve_to_relative(*args),
    SvgCommand.SMOOTH_QUADRATIC_CURVE_TO: lambda shape, args: shape.smooth_quadratic_curve_to(*args),
    SvgCommand.SMOOTH_QUADRATIC_CURVE_TO_RELATIVE: lambda shape, args: shape.smooth_quadratic_curve_to_relative(
        *args
    ),
    SvgCommand.ELLIPTICAL_ARC_TO: lambda shape, args: shape.elliptical_arc_to(*_elliptical_arc_args(args)),
    SvgCommand.ELLIPTICAL_ARC_TO_RELATIVE: lambda shape, args: shape.elliptical_arc_to_relative(
        *_elliptical_arc_args(args)
    ),
    SvgCommand.CLOSE: lambda shape, args: shape.close(),
    SvgCommand.CLOSE_RELATIVE: lambda shape, args: shape.close(),
}


###############################################################################
# SvgPathParser
###############################################################################
class SvgPathParser:
    """
    Parser turning SVG path data into a list of SvgPathItem.

    Repeated argument groups are expanded into separate items, so every
    item carries exactly the number of arguments its command takes.
    """

    # Command letters:
    SVG_CMDS: ClassVar[str] = "MmLlHhVvCcSsQqTtAaZz"
    # Definition of a number:
    SVG_NUMBER: ClassVar["re.Pattern[str]"] = re.compile(r"[-+]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?")
    # Definition of an arc flag:
    SVG_FLAG: ClassVar["re.Pattern[str]"] = re.compile(r"[01]")
    SEPARATORS: ClassVar[str] = " \t\r\n\f,"

    def __init__(self, path_string: str):
        self._text = path_string
        self._pos = 0

    @classmethod
    def parse(cls, path_string: str) -> List[SvgPathItem]:
        """
        Parse _path_string_ into command items.

        Args:
            path_string (str): SVG path data, e.g. "M 0 0 L 10 0 Z"

        Returns:
            List[SvgPathItem]: the commands in order of appearance

        Raises:
            SvgPathParseError: on unknown commands, missing or malformed arguments
        """
        items = cls(path_string)._parse_items()  # pylint: disable=protected-access
        logger.debug("Parsed %d SVG path commands", len(items))
        return items

    def _skip_separators(self) -> None:
        while self._pos < len(self._text) and self._text[self._pos] in self.SEPARATORS:
            self._pos += 1

    def _at_end(self) -> bool:
        self._skip_separators()
        return self._pos >= len(self._text)

    def _next_is_command(self) -> bool:
        return not self._at_end() and self._text[self._pos].isalpha()

    def _read_command(self) -> SvgCommand:
        char = self._text[self._pos]
        if char not in self.SVG_CMDS:
            raise SvgPathParseError(f"Unknown SVG path command '{char}' at position {self._pos}")
        self._pos += 1
        return SvgCommand(char)

    def _read_number(self, command: SvgCommand, is_flag: bool) -> float:
        self._skip_separators()
        pattern = self.SVG_FLAG if is_flag else self.SVG_NUMBER
        match = pattern.match(self._text, self._pos)
        if match is None:
            found = self._text[self._pos : self._pos + 10] if self._pos < len(self._text) else "end of data"
            kind = "flag" if is_flag else "number"
            raise SvgPathParseError(
                f"Expected {kind} for SVG command '{command.value}' at position {self._pos}, found '{found}'"
            )
        self._pos = match.end()
        return float(match.group(0))

    def _read_args(self, command: SvgCommand) -> Tuple[float, ...]:
        info = COMMAND_INFO[command]
        return tuple(self._read_number(command, index in info.flag_indices) for index in range(info.num_args))

    def _parse_items(self) -> List[SvgPathItem]:
        items: List[SvgPathItem] = []
        while not self._at_end():
            if not self._next_is_command():
                found = self._text[self._pos : self._pos + 10]
                raise SvgPathParseError(f"Expected SVG path command at position {self._pos}, found '{found}'")
            command = self._read_command()
            info = COMMAND_INFO[command]
            if info.num_args == 0:
                items.append(SvgPathItem(command, ()))
                continue

            items.append(SvgPathItem(command, self._read_args(command)))
            repeated = _IMPLICIT_FOLLOWERS.get(command, command)
            while not self._at_end() and not self._next_is_command():
                items.append(SvgPathItem(repeated, self._read_args(repeated)))
        return items


def parse_svg_path(path_string: str) -> List[SvgPathItem]:
    """Parse SVG path data into command items (see SvgPathParser.parse)."""
    return SvgPathParser.parse(path_string)


def apply_svg_path(shape: Shape, items: List[SvgPathItem]) -> Shape:
    """Replay parsed _items_ as path-building calls on _shape_."""
    for item in items:
        COMMAND_HANDLERS[item.command](shape, item.args)
    return shape
