"""Vectors, affine transforms and bounding boxes."""

import math
from dataclasses import dataclass
from typing import NamedTuple, Union

import numpy as np


class Vector3D(NamedTuple):
    """A point or direction in 3D space."""
    x: float
    y: float
    z: float = 0.0

    def __add__(self, other: "Vector3D") -> "Vector3D":
        return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3D") -> "Vector3D":
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def scaled(self, factor: float) -> "Vector3D":
        return Vector3D(self.x * factor, self.y * factor, self.z * factor)

    @property
    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def normalized(self) -> "Vector3D":
        length = self.length
        if length == 0:
            return self
        return self.scaled(1 / length)

    def is_close(self, other: "Vector3D", tolerance: float = 1e-4) -> bool:
        """Check if two vectors are equal within tolerance."""
        return (
            abs(self.x - other.x) < tolerance
            and abs(self.y - other.y) < tolerance
            and abs(self.z - other.z) < tolerance
        )


ORIGIN = Vector3D(0.0, 0.0, 0.0)


class Transform:
    """Affine 3D transform: a 3x3 linear part plus a translation.

    Stored as a 4x4 homogeneous matrix.  ``a @ b`` applies ``b`` first,
    then ``a``.
    """

    __slots__ = ("matrix",)

    def __init__(self, matrix: np.ndarray):
        matrix = np.asarray(matrix, dtype=float)
        if matrix.shape == (3, 4):
            matrix = np.vstack([matrix, [0.0, 0.0, 0.0, 1.0]])
        if matrix.shape != (4, 4):
            raise ValueError(f"Transform needs a 3x4 or 4x4 matrix, got {matrix.shape}")
        self.matrix = matrix

    @classmethod
    def identity(cls) -> "Transform":
        return cls(np.eye(4))

    @classmethod
    def translation(cls, x: float = 0.0, y: float = 0.0, z: float = 0.0) -> "Transform":
        m = np.eye(4)
        m[:3, 3] = (x, y, z)
        return cls(m)

    @classmethod
    def scale(cls, factor: float) -> "Transform":
        m = np.eye(4)
        m[0, 0] = m[1, 1] = m[2, 2] = factor
        return cls(m)

    @classmethod
    def axis_angle(cls, axis: Vector3D, angle: float) -> "Transform":
        """Rotation by ``angle`` radians around a unit ``axis``."""
        x, y, z = axis
        c = math.cos(angle)
        s = math.sin(angle)
        t = 1 - c
        m = np.eye(4)
        m[:3, :3] = [
            [t * x * x + c, t * x * y - z * s, t * x * z + y * s],
            [t * x * y + z * s, t * y * y + c, t * y * z - x * s],
            [t * x * z - y * s, t * y * z + x * s, t * z * z + c],
        ]
        return cls(m)

    @classmethod
    def rotation_z(cls, angle: float) -> "Transform":
        return cls.axis_angle(Vector3D(0.0, 0.0, 1.0), angle)

    def __matmul__(self, other: "Transform") -> "Transform":
        return Transform(self.matrix @ other.matrix)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transform):
            return NotImplemented
        return bool(np.allclose(self.matrix, other.matrix))

    def __repr__(self) -> str:
        return f"Transform({self.matrix[:3].tolist()!r})"

    def apply(self, v: Vector3D) -> Vector3D:
        """Transform a point (translation included)."""
        x, y, z, _ = self.matrix @ np.array([v.x, v.y, v.z, 1.0])
        return Vector3D(float(x), float(y), float(z))

    def apply_direction(self, v: Vector3D) -> Vector3D:
        """Transform a direction (translation ignored)."""
        x, y, z = self.matrix[:3, :3] @ np.array([v.x, v.y, v.z])
        return Vector3D(float(x), float(y), float(z))

    @property
    def origin(self) -> Vector3D:
        """Where the local origin lands."""
        x, y, z = self.matrix[:3, 3]
        return Vector3D(float(x), float(y), float(z))

    @property
    def xy_scale(self) -> float:
        """Linear scale factor in the XY plane (sqrt of the area factor)."""
        return math.sqrt(abs(self.xy_determinant))

    @property
    def z_scale(self) -> float:
        return float(np.linalg.norm(self.matrix[:3, 2]))

    @property
    def xy_determinant(self) -> float:
        return float(np.linalg.det(self.matrix[:2, :2]))

    @property
    def is_mirrored(self) -> bool:
        """True if the transform flips XY handedness."""
        return self.xy_determinant < 0


@dataclass(frozen=True)
class SimpleTransform:
    """Translate/rotate/scale shorthand, applied as translate(rotate(scale(v)))."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    rotation_degrees: float = 0.0
    scale: float = 1.0

    def to_transform(self) -> Transform:
        translation = Transform.translation(self.x, self.y, self.z)
        rotation = Transform.rotation_z(math.radians(self.rotation_degrees))
        return translation @ rotation @ Transform.scale(self.scale)


Transformish = Union[Transform, SimpleTransform]


def to_transform(ish: Transformish) -> Transform:
    """Convert either transform flavor into a Transform."""
    if isinstance(ish, Transform):
        return ish
    return ish.to_transform()


@dataclass
class BoundingBox:
    """Axis-aligned bounding box."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    min_z: float = 0.0
    max_z: float = 0.0

    @classmethod
    def empty(cls) -> "BoundingBox":
        return cls(math.inf, math.inf, -math.inf, -math.inf, math.inf, -math.inf)

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> tuple[float, float]:
        return (
            (self.min_x + self.max_x) / 2,
            (self.min_y + self.max_y) / 2,
        )

    def include(self, p: Vector3D, radius: float = 0.0) -> None:
        """Grow to cover ``p``, padded by ``radius`` in XY."""
        self.min_x = min(self.min_x, p.x - radius)
        self.min_y = min(self.min_y, p.y - radius)
        self.max_x = max(self.max_x, p.x + radius)
        self.max_y = max(self.max_y, p.y + radius)
        self.min_z = min(self.min_z, p.z)
        self.max_z = max(self.max_z, p.z)

    def padded(self, amount: float) -> "BoundingBox":
        return BoundingBox(
            min_x=self.min_x - amount,
            min_y=self.min_y - amount,
            max_x=self.max_x + amount,
            max_y=self.max_y + amount,
            min_z=self.min_z - amount,
            max_z=self.max_z + amount,
        )
