"""G-code emission for hobby CNC routers."""

from dataclasses import dataclass
from enum import Enum
from io import StringIO
from pathlib import Path
from typing import Optional

from .geometry import Vector3D
from .job import ConfigError, JobContext
from .units import ComplexAmount, inches


class CarveError(RuntimeError):
    """Raised when a job cannot be turned into G-code."""


class CommentMode(Enum):
    NONE = "none"
    PARENTHESES = "parentheses"
    SEMICOLON = "semicolon"


@dataclass
class GCodeSettings:
    """Settings for G-code generation.

    Distances are amounts so they mean the same thing whatever the job's
    native unit is.
    """
    safe_z: ComplexAmount = inches(1, 4)  # Height for rapid moves between cuts
    minimum_fast_z: ComplexAmount = inches(1, 16)  # Lowest Z reached at rapid speed
    step_down: ComplexAmount = inches(1, 50)  # Deepest cut per pass
    feed_rate: ComplexAmount = inches(3)  # Per minute
    spindle_rpm: int = 1000
    fraction_digits: int = 4
    comment_mode: CommentMode = CommentMode.PARENTHESES


class GCodeBuilder:
    """Writes G-code one line at a time.

    Keeps track of the last commanded position so that motion lines only
    carry the axis words that change.
    """

    def __init__(self, context: JobContext, settings: Optional[GCodeSettings] = None):
        self.settings = settings or GCodeSettings()
        self.context = context
        self.safe_z = context.to_native(self.settings.safe_z)
        self.minimum_fast_z = context.to_native(self.settings.minimum_fast_z)
        self.step_down = context.to_native(self.settings.step_down)
        self.feed_rate = context.to_native(self.settings.feed_rate)
        if self.step_down <= 0:
            raise ConfigError(f"Step-down must be positive, got {self.settings.step_down}")
        if self.settings.fraction_digits < 0:
            raise ConfigError("fraction_digits cannot be negative")
        self.buffer = StringIO()
        # Position tracking to avoid redundant words
        self._pos_x: Optional[float] = None
        self._pos_y: Optional[float] = None
        self._pos_z: Optional[float] = None

    @property
    def position(self) -> Vector3D:
        """Last commanded position; axes never commanded read as 0."""
        return Vector3D(self._pos_x or 0.0, self._pos_y or 0.0, self._pos_z or 0.0)

    def _format_coord(self, value: float) -> str:
        """Format a coordinate value."""
        text = f"{value:.{self.settings.fraction_digits}f}"
        if text.startswith("-") and not text.strip("-0."):
            text = text[1:]  # No negative zero
        return text

    def _coords_equal(self, a: Optional[float], b: float) -> bool:
        """Check if coordinates would print the same."""
        if a is None:
            return False
        return self._format_coord(a) == self._format_coord(b)

    def _write(self, line: str) -> None:
        """Write a line of G-code."""
        self.buffer.write(line + "\n")

    def blank_line(self) -> "GCodeBuilder":
        self._write("")
        return self

    def comment(self, text: str) -> "GCodeBuilder":
        """Add a comment, styled per the comment mode."""
        mode = self.settings.comment_mode
        if mode is CommentMode.PARENTHESES:
            self._write("(" + text.replace("(", "[").replace(")", "]") + ")")
        elif mode is CommentMode.SEMICOLON:
            self._write(f"; {text}")
        return self

    def header(self) -> "GCodeBuilder":
        """Absolute positioning, units, feed, spindle on, then up to safe height."""
        unit_code = self.context.native_unit.gcode
        if unit_code is None:
            raise CarveError(
                f"Native unit must be inch or millimeter, not {self.context.native_unit.name}"
            )
        self._write("G90")
        self._write(unit_code)
        self._write(f"F{self._format_coord(self.feed_rate)}")
        self._write(f"S{self.settings.spindle_rpm}")
        self._write("M03")
        self.rapid(z=self.safe_z)
        self.blank_line()
        return self

    def footer(self) -> "GCodeBuilder":
        """Retract and stop the spindle."""
        self.blank_line()
        self.comment("Job done!")
        self.rapid(z=self.safe_z)
        self._write("M05")
        return self

    def pause(self) -> "GCodeBuilder":
        self._write("M00")
        return self

    def _axis_words(self, x: Optional[float], y: Optional[float], z: Optional[float]) -> list[str]:
        words = []
        if x is not None and not self._coords_equal(self._pos_x, x):
            words.append(f"X{self._format_coord(x)}")
        if y is not None and not self._coords_equal(self._pos_y, y):
            words.append(f"Y{self._format_coord(y)}")
        if z is not None and not self._coords_equal(self._pos_z, z):
            words.append(f"Z{self._format_coord(z)}")
        return words

    def _update_position(self, x: Optional[float], y: Optional[float], z: Optional[float]) -> None:
        if x is not None:
            self._pos_x = x
        if y is not None:
            self._pos_y = y
        if z is not None:
            self._pos_z = z

    def _move(self, command: str, x: Optional[float], y: Optional[float], z: Optional[float]) -> None:
        words = self._axis_words(x, y, z)
        if not words:
            return  # Skip redundant move
        self._write(" ".join([command] + words))
        self._update_position(x, y, z)

    def rapid(
        self, x: Optional[float] = None, y: Optional[float] = None, z: Optional[float] = None
    ) -> "GCodeBuilder":
        """Rapid move (G00)."""
        self._move("G00", x, y, z)
        return self

    def linear(
        self, x: Optional[float] = None, y: Optional[float] = None, z: Optional[float] = None
    ) -> "GCodeBuilder":
        """Linear move at feed rate (G01)."""
        self._move("G01", x, y, z)
        return self

    def arc(
        self,
        clockwise: bool,
        x: float,
        y: float,
        i: float,
        j: float,
        z: Optional[float] = None,
    ) -> "GCodeBuilder":
        """Arc to (x, y) around the center at offset (i, j) from the current point.

        Always emitted, since a full circle ends where it starts.
        """
        words = [("G02" if clockwise else "G03")] + self._axis_words(x, y, z)
        words.append(f"I{self._format_coord(i)}")
        words.append(f"J{self._format_coord(j)}")
        self._write(" ".join(words))
        self._update_position(x, y, z)
        return self

    def get_gcode(self) -> str:
        """Get the generated G-code as a string."""
        return self.buffer.getvalue()

    def save(self, path: Path) -> None:
        """Save G-code to a file."""
        with open(path, "w") as f:
            f.write(self.get_gcode())

    def reset(self) -> None:
        """Reset the builder for new G-code."""
        self.buffer = StringIO()
        self._pos_x = None
        self._pos_y = None
        self._pos_z = None
