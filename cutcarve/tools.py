"""Router bits and the persistent bit library."""

import logging
import math
import sqlite3
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, ClassVar, Optional

from .units import DISTANCE_UNITS, INCH, Unit, get_unit

logger = logging.getLogger(__name__)


class ToolType(Enum):
    ENDMILL = "endmill"
    VBIT = "vbit"


@dataclass(frozen=True)
class EndMill:
    """Flat end mill: the same width at every depth."""
    id: str
    name: str
    diameter: float
    unit: str = INCH.name
    kind: ClassVar[ToolType] = ToolType.ENDMILL

    def diameter_function(self, depth: float) -> float:
        return self.diameter

    def in_unit(self, unit: Unit) -> "EndMill":
        factor = _conversion_factor(self.unit, unit)
        if factor == 1:
            return self
        return replace(self, diameter=self.diameter * factor, unit=unit.name)


@dataclass(frozen=True)
class VBit:
    """V-bit: cuts wider the deeper it goes, up to its full diameter."""
    id: str
    name: str
    diameter: float
    angle: float = 60.0  # included angle in degrees
    tip_diameter: float = 0.0  # flat tip diameter, 0 for sharp
    unit: str = INCH.name
    kind: ClassVar[ToolType] = ToolType.VBIT

    def diameter_function(self, depth: float) -> float:
        """Width of the cut at ``depth`` below the surface."""
        if depth <= 0:
            return self.tip_diameter
        half_angle = math.radians(self.angle / 2)
        return min(self.diameter, self.tip_diameter + 2 * depth * math.tan(half_angle))

    def in_unit(self, unit: Unit) -> "VBit":
        factor = _conversion_factor(self.unit, unit)
        if factor == 1:
            return self
        return replace(
            self,
            diameter=self.diameter * factor,
            tip_diameter=self.tip_diameter * factor,
            unit=unit.name,
        )


@dataclass(frozen=True)
class ProfileBit:
    """Any other bit, described directly by its depth-to-diameter function.

    Dimensions are taken to be in the job's native unit.
    """
    name: str
    profile: Callable[[float], float]

    def diameter_function(self, depth: float) -> float:
        return self.profile(depth)

    def in_unit(self, unit: Unit) -> "ProfileBit":
        return self


# Type alias for any bit
RouterBit = EndMill | VBit | ProfileBit


def _conversion_factor(from_unit: str, to_unit: Unit) -> float:
    source = get_unit(from_unit, DISTANCE_UNITS)
    return float(source.value / to_unit.value)


def make_vbit(degrees: float, tip_size: float, unit: str = INCH.name, diameter: float = 0.5) -> VBit:
    """V-bit named after its tip size and angle, e.g. ``0.05in-tip 30-degree carving bit``."""
    abbreviation = get_unit(unit, DISTANCE_UNITS).abbreviation
    name = (f"{tip_size:g}{abbreviation}-tip " if tip_size > 0 else "") + f"{degrees:g}-degree carving bit"
    return VBit(
        id=f"vb-{degrees:g}deg-{tip_size:g}{abbreviation}",
        name=name,
        diameter=diameter,
        angle=degrees,
        tip_diameter=tip_size,
        unit=unit,
    )


def make_flat_bit(diameter: float, unit: str = INCH.name) -> EndMill:
    abbreviation = get_unit(unit, DISTANCE_UNITS).abbreviation
    return EndMill(
        id=f"em-{diameter:g}{abbreviation}",
        name=f"{diameter:g}{abbreviation} end mill",
        diameter=diameter,
        unit=unit,
    )


class ToolLibrary:
    """Router bits kept in a small SQLite database.

    End mills and v-bits share one table; ``kind`` tells them apart.
    Profile bits are code, not data, and can't be stored.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS bits (
            id TEXT PRIMARY KEY,
            kind TEXT NOT NULL,
            name TEXT NOT NULL,
            diameter REAL NOT NULL,
            angle REAL,
            tip_diameter REAL NOT NULL DEFAULT 0.0,
            unit TEXT NOT NULL DEFAULT 'inch'
        )
    """

    DEFAULT_BITS = (
        make_flat_bit(0.125),
        make_flat_bit(3, "millimeter"),
        make_vbit(30, 0.05, diameter=0.25),
        make_vbit(60, 0, "millimeter", diameter=12),
        make_vbit(90, 0, "millimeter", diameter=12),
    )

    COLUMNS = "id, kind, name, diameter, angle, tip_diameter, unit"

    def __init__(self, db_path: Optional[Path] = None):
        if db_path is None:
            config_dir = Path.home() / ".config" / "cutcarve"
            config_dir.mkdir(parents=True, exist_ok=True)
            db_path = config_dir / "bits.db"
        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(self.SCHEMA)
            (count,) = conn.execute("SELECT COUNT(*) FROM bits").fetchone()
            if count == 0:
                logger.debug("Seeding %s with %d default bits", self.db_path, len(self.DEFAULT_BITS))
                conn.executemany(self._insert_sql(), [self._to_row(bit) for bit in self.DEFAULT_BITS])

    def _insert_sql(self) -> str:
        return f"INSERT OR REPLACE INTO bits ({self.COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)"

    @staticmethod
    def _to_row(bit: RouterBit) -> tuple:
        if isinstance(bit, EndMill):
            return (bit.id, bit.kind.value, bit.name, bit.diameter, None, 0.0, bit.unit)
        if isinstance(bit, VBit):
            return (bit.id, bit.kind.value, bit.name, bit.diameter, bit.angle, bit.tip_diameter, bit.unit)
        raise TypeError(f"Cannot store {type(bit).__name__} in the bit library")

    @staticmethod
    def _from_row(row: tuple) -> RouterBit:
        bit_id, kind, name, diameter, angle, tip_diameter, unit = row
        if ToolType(kind) is ToolType.VBIT:
            return VBit(bit_id, name, diameter, angle, tip_diameter, unit)
        return EndMill(bit_id, name, diameter, unit)

    def add(self, bit: RouterBit) -> None:
        """Add a bit, replacing any bit with the same id."""
        row = self._to_row(bit)
        with self._connect() as conn:
            conn.execute(self._insert_sql(), row)

    def remove(self, bit_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM bits WHERE id = ?", (bit_id,))

    def get(self, bit_id: str) -> Optional[RouterBit]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {self.COLUMNS} FROM bits WHERE id = ?", (bit_id,)
            ).fetchone()
        return self._from_row(row) if row else None

    def _get_kind(self, kind: ToolType) -> list[RouterBit]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {self.COLUMNS} FROM bits WHERE kind = ? ORDER BY name", (kind.value,)
            ).fetchall()
        return [self._from_row(row) for row in rows]

    def get_endmills(self) -> list[EndMill]:
        return self._get_kind(ToolType.ENDMILL)

    def get_vbits(self) -> list[VBit]:
        return self._get_kind(ToolType.VBIT)

    def get_all(self) -> list[RouterBit]:
        return self.get_endmills() + self.get_vbits()
