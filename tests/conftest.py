"""Shared fixtures for the shapekit tests."""

import pytest


class RecordingContext:
    """Drawing context that records every call."""

    def __init__(self):
        self.calls = []

    def move_to(self, x, y):
        self.calls.append(("move_to", x, y))

    def line_to(self, x, y):
        self.calls.append(("line_to", x, y))

    def quadratic_curve_to(self, cpx, cpy, x, y):
        self.calls.append(("quadratic_curve_to", cpx, cpy, x, y))

    def bezier_curve_to(self, cp1x, cp1y, cp2x, cp2y, x, y):
        self.calls.append(("bezier_curve_to", cp1x, cp1y, cp2x, cp2y, x, y))

    def arc(self, x, y, radius, start_angle, end_angle, anticlockwise):
        self.calls.append(("arc", x, y, radius, start_angle, end_angle, anticlockwise))

    def ellipse(self, x, y, radius_x, radius_y, rotation, start_angle, end_angle, anticlockwise):
        self.calls.append(("ellipse", x, y, radius_x, radius_y, rotation, start_angle, end_angle, anticlockwise))

    def close_path(self):
        self.calls.append(("close_path",))


@pytest.fixture
def recording_context():
    """A fresh drawing context recording its calls."""
    return RecordingContext()
