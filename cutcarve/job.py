"""Per-run job context: native unit, stock thickness and router bit."""

import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Mapping, Optional, Union

from .tools import RouterBit
from .units import (
    DISTANCE_UNITS,
    ComplexAmount,
    Unit,
    UnitError,
    board_unit,
    get_unit,
    parse_amount,
)

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a job cannot be set up from the given settings."""


@dataclass(frozen=True)
class JobContext:
    """Everything a traversal needs to know about the job.

    Built once per run and never modified.  ``min_z`` is the bottom of the
    stock (minus its thickness), in native units.
    """
    native_unit: Unit
    min_z: Fraction
    router_bit: RouterBit
    unit_table: Mapping[str, Unit]

    @property
    def thickness(self) -> Fraction:
        return -self.min_z

    def decode(self, amount: ComplexAmount) -> Fraction:
        """Size of ``amount`` in native units."""
        return amount.decode(self.native_unit, self.unit_table)

    def to_native(self, amount: ComplexAmount) -> float:
        return float(self.decode(amount))


def make_job_context(
    router_bit: RouterBit,
    thickness: Optional[Union[ComplexAmount, str]],
    native_unit: Union[Unit, str] = "inch",
) -> JobContext:
    """Build a JobContext, converting the bit to the native unit.

    ``thickness`` may be a ComplexAmount or a string such as ``"1/4in"``.
    """
    try:
        if isinstance(native_unit, str):
            native_unit = get_unit(native_unit, DISTANCE_UNITS)
        if thickness is None:
            raise ConfigError("Workpiece thickness must be specified")
        if isinstance(thickness, str):
            thickness = parse_amount(thickness, DISTANCE_UNITS)
        thickness_mm = thickness.decode(DISTANCE_UNITS["millimeter"], DISTANCE_UNITS)
    except UnitError as e:
        raise ConfigError(str(e)) from e
    if thickness_mm <= 0:
        raise ConfigError(f"Workpiece thickness must be positive, got {thickness}")

    board = board_unit(thickness_mm)
    unit_table = {**DISTANCE_UNITS, board.name: board}
    context = JobContext(
        native_unit=native_unit,
        min_z=-(thickness_mm / native_unit.value),
        router_bit=router_bit.in_unit(native_unit),
        unit_table=unit_table,
    )
    logger.info(
        "Job: %s stock, %s, native unit %s",
        thickness, context.router_bit.name, native_unit.name,
    )
    return context
