"""Measurement units and multi-unit amounts.

Amounts are kept as exact fractions per unit (``{"inch": 1/8, "board": 1}``)
and only collapse to a single number when decoded against a native unit.
Unit values are expressed in millimeters.
"""

import re
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Mapping, Optional, Union

Number = Union[int, float, Fraction]


class UnitError(ValueError):
    """Raised for unknown unit names and malformed amounts."""


_DECIMAL_RE = re.compile(r"^\s*([+-]?\d+)(?:\.(\d+))?\s*$")


def parse_number(text: str) -> Fraction:
    """Parse ``"3"``, ``"0.125"``, ``"5/32"`` or ``"1+1/2"`` exactly."""
    text = text.strip()
    # A '+' past the first character is a sum, not a sign
    if "+" in text[1:]:
        terms = text[1:].split("+")
        terms[0] = text[0] + terms[0]
        return sum((parse_number(term) for term in terms), Fraction(0))
    if "/" in text:
        numerator, _, denominator = text.rpartition("/")
        divisor = parse_number(denominator)
        if divisor == 0:
            raise UnitError(f"Failed to parse '{text}' as number: zero denominator")
        return parse_number(numerator) / divisor
    m = _DECIMAL_RE.match(text)
    if m is None:
        raise UnitError(f"Failed to parse '{text}' as number")
    ones, decimals = m.group(1), m.group(2) or ""
    sign = -1 if ones.startswith("-") else 1
    return sign * Fraction(int(ones.lstrip("+-") + decimals), 10 ** len(decimals))


def to_fraction(value: Union[Number, str]) -> Fraction:
    if isinstance(value, str):
        return parse_number(value)
    if isinstance(value, float):
        return Fraction(value).limit_denominator(10 ** 9)
    return Fraction(value)


def format_fraction(value: Fraction) -> str:
    if value.denominator == 1:
        return str(value.numerator)
    return f"{value.numerator}/{value.denominator}"


@dataclass(frozen=True)
class Unit:
    """A linear unit; ``value`` is its size in millimeters."""
    name: str
    value: Fraction
    abbreviation: str
    aliases: tuple[str, ...] = ()
    gcode: Optional[str] = None  # G20/G21 for units a controller understands


INCH = Unit(
    name="inch",
    value=Fraction(254, 10),
    abbreviation="in",
    aliases=("inch", "in", '"', "inches"),
    gcode="G20",
)

MILLIMETER = Unit(
    name="millimeter",
    value=Fraction(1),
    abbreviation="mm",
    aliases=("millimeter", "mm", "millimeters"),
    gcode="G21",
)

BOARD_UNIT_NAME = "board"


def board_unit(thickness_mm: Fraction) -> Unit:
    """The context-relative unit equal to one workpiece thickness."""
    return Unit(
        name=BOARD_UNIT_NAME,
        value=Fraction(thickness_mm),
        abbreviation="board",
        aliases=("board", "boards"),
    )


UnitTable = Mapping[str, Unit]

DISTANCE_UNITS: dict[str, Unit] = {
    INCH.name: INCH,
    MILLIMETER.name: MILLIMETER,
}


def find_unit(name: str, table: UnitTable) -> Optional[Unit]:
    """Look a unit up by name, then by alias."""
    if name in table:
        return table[name]
    for unit in table.values():
        if name in unit.aliases:
            return unit
    return None


def get_unit(name: str, table: UnitTable) -> Unit:
    unit = find_unit(name, table)
    if unit is None:
        raise UnitError(f"No such distance unit as '{name}'")
    return unit


@dataclass(frozen=True)
class ComplexAmount:
    """A sum of exact quantities in possibly different units."""
    parts: Mapping[str, Fraction] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(
            self, "parts", {name: Fraction(v) for name, v in self.parts.items()}
        )

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.parts.items())))

    def scale(self, factor: Number) -> "ComplexAmount":
        factor = to_fraction(factor)
        if factor == 1:
            return self
        return ComplexAmount({name: v * factor for name, v in self.parts.items()})

    def __add__(self, other: "ComplexAmount") -> "ComplexAmount":
        parts = dict(self.parts)
        for name, v in other.parts.items():
            parts[name] = parts.get(name, Fraction(0)) + v
        return ComplexAmount(parts)

    def __mul__(self, factor: Number) -> "ComplexAmount":
        return self.scale(factor)

    __rmul__ = __mul__

    def format(self) -> str:
        return "+".join(format_fraction(v) + name for name, v in self.parts.items())

    def __str__(self) -> str:
        return self.format()

    def decode(self, native_unit: Unit, table: UnitTable) -> Fraction:
        """Total this amount in ``native_unit``, exactly."""
        total = Fraction(0)
        for name, quantity in self.parts.items():
            if name == native_unit.name:
                total += quantity
            else:
                unit = get_unit(name, table)
                total += quantity * unit.value / native_unit.value
        return total


_AMOUNT_RE = re.compile(r"^(.*?)\s*(inches|inch|in|\"|millimeters|millimeter|mm|boards|board)$")


def parse_amount(text: str, table: UnitTable) -> ComplexAmount:
    """Parse ``"1/8in"``, ``"3mm"``, ``"1+1/2in"`` or ``"1board"``."""
    m = _AMOUNT_RE.match(text.strip())
    if m is None:
        raise UnitError(f"Invalid complex amount string: '{text}'")
    unit = get_unit(m.group(2), table)
    return ComplexAmount({unit.name: parse_number(m.group(1))})


def amount(unit_name: str, numerator: Number, denominator: Number = 1) -> ComplexAmount:
    return ComplexAmount({unit_name: Fraction(numerator) / Fraction(denominator)})


def inches(numerator: Number, denominator: Number = 1) -> ComplexAmount:
    return amount(INCH.name, numerator, denominator)


def millimeters(numerator: Number, denominator: Number = 1) -> ComplexAmount:
    return amount(MILLIMETER.name, numerator, denominator)


def boards(numerator: Number, denominator: Number = 1) -> ComplexAmount:
    return amount(BOARD_UNIT_NAME, numerator, denominator)

