"""Central module containing shared exceptions, enums and the invalidation emitter."""

from __future__ import annotations

from enum import Enum
from typing import Callable, List

###############################################################################
# Exceptions
###############################################################################


class ShapeKitError(Exception):
    """Base exception for all shapekit errors."""


class InvalidGeometryError(ShapeKitError, ValueError):
    """Raised when geometry parameters are non-finite or otherwise invalid."""


class ImmutableShapeError(ShapeKitError, RuntimeError):
    """Raised when an immutable shape is mutated."""


class SvgPathParseError(ShapeKitError, ValueError):
    """Raised when SVG path data cannot be parsed."""


class DeserializationError(ShapeKitError, ValueError):
    """Raised when serialized shape data is malformed."""


class CagError(ShapeKitError):
    """Raised when the boolean-geometry backend fails."""


###############################################################################
# Enums
###############################################################################


class LineCap(Enum):
    """Enum to define how the open ends of a stroke are drawn."""

    BUTT = "butt"
    ROUND = "round"
    SQUARE = "square"


class LineJoin(Enum):
    """Enum to define how two stroked segments are joined."""

    MITER = "miter"
    ROUND = "round"
    BEVEL = "bevel"


class BinaryOperation(Enum):
    """Boolean combination of two areas under the non-zero winding rule."""

    UNION = "union"
    INTERSECTION = "intersection"
    DIFFERENCE = "difference"
    XOR = "xor"


###############################################################################
# Emitter
###############################################################################


class Emitter:
    """Minimal listener registry used to broadcast geometry invalidation."""

    def __init__(self) -> None:
        self._listeners: List[Callable[[], None]] = []

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Register _listener_, which is called without arguments on emit()."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]) -> None:
        """Unregister _listener_.

        Raises:
            ValueError: if the listener was never registered
        """
        self._listeners.remove(listener)

    def has_listener(self, listener: Callable[[], None]) -> bool:
        """Whether _listener_ is currently registered."""
        return listener in self._listeners

    def emit(self) -> None:
        """Call all listeners in registration order."""
        # copy, listeners may unregister themselves while being notified
        for listener in list(self._listeners):
            listener()

    def __len__(self) -> int:
        return len(self._listeners)
