"""Tests for the shared exceptions, enums and the invalidation emitter."""

from __future__ import annotations

import pytest

from shapekit.common import (
    CagError,
    DeserializationError,
    Emitter,
    ImmutableShapeError,
    InvalidGeometryError,
    LineCap,
    ShapeKitError,
    SvgPathParseError,
)


class TestExceptionHierarchy:
    """Test that every error can be caught as ShapeKitError and its builtin base."""

    @pytest.mark.parametrize(
        "error_class, builtin",
        [
            (InvalidGeometryError, ValueError),
            (ImmutableShapeError, RuntimeError),
            (SvgPathParseError, ValueError),
            (DeserializationError, ValueError),
            (CagError, Exception),
        ],
    )
    def test_error_bases(self, error_class, builtin):
        """Each error derives from ShapeKitError and the matching builtin."""
        assert issubclass(error_class, ShapeKitError)
        assert issubclass(error_class, builtin)


class TestEnums:
    """Test enum values used for serialization."""

    def test_line_cap_from_value(self):
        """Line caps are looked up by their SVG name."""
        assert LineCap("round") is LineCap.ROUND


class TestEmitter:
    """Test listener registration and notification."""

    def test_emit_calls_listeners_in_order(self):
        """Verify listeners run in registration order."""
        calls = []
        emitter = Emitter()
        emitter.add_listener(lambda: calls.append("a"))
        emitter.add_listener(lambda: calls.append("b"))

        emitter.emit()

        assert calls == ["a", "b"]
        assert len(emitter) == 2

    def test_remove_listener(self):
        """Verify removed listeners are no longer notified."""
        calls = []

        def listener():
            calls.append(1)

        emitter = Emitter()
        emitter.add_listener(listener)
        assert emitter.has_listener(listener)
        emitter.remove_listener(listener)
        emitter.emit()

        assert calls == []
        assert not emitter.has_listener(listener)

    def test_remove_unknown_listener_raises(self):
        """Verify removing a listener that was never added fails."""
        with pytest.raises(ValueError):
            Emitter().remove_listener(lambda: None)

    def test_listener_may_unregister_during_emit(self):
        """Verify a listener can remove itself while being notified."""
        emitter = Emitter()
        calls = []

        def once():
            calls.append(1)
            emitter.remove_listener(once)

        emitter.add_listener(once)
        emitter.emit()
        emitter.emit()

        assert calls == [1]
