"""
Pose and quaternion helpers.

Quaternions are stored as numpy coefficient arrays in [x, y, z, w] order.
The world frame is Y-up and an agent looks down its local -Z axis, so a
left turn is a positive rotation about +Y.
"""
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

ArrayLike = Union[Sequence[float], np.ndarray]

UP = np.array([0.0, 1.0, 0.0])
FRONT = np.array([0.0, 0.0, -1.0])


def quat_identity() -> np.ndarray:
    return np.array([0.0, 0.0, 0.0, 1.0])


def quat_normalize(q: ArrayLike) -> np.ndarray:
    """Return a unit copy of `q`. A zero quaternion is rejected."""
    q = np.asarray(q, dtype=np.float64).copy()
    if q.shape != (4,):
        raise ValueError(f"Quaternion must have 4 coefficients, got shape {q.shape}")
    norm = np.linalg.norm(q)
    if not np.isfinite(norm) or norm < 1e-12:
        raise ValueError(f"Cannot normalize quaternion {q}")
    return q / norm


def quat_from_angle_axis(theta: float, axis: ArrayLike) -> np.ndarray:
    axis = np.asarray(axis, dtype=np.float64)
    axis = axis / np.linalg.norm(axis)
    half = theta / 2.0
    xyz = axis * np.sin(half)
    return np.array([xyz[0], xyz[1], xyz[2], np.cos(half)])


def quat_multiply(a: ArrayLike, b: ArrayLike) -> np.ndarray:
    """Hamilton product a * b (apply b first, then a)."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return np.array([
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
        aw * bw - ax * bx - ay * by - az * bz,
    ])


def quat_rotate_vector(q: ArrayLike, v: ArrayLike) -> np.ndarray:
    q = np.asarray(q, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    u = q[:3]
    w = q[3]
    return v + 2.0 * np.cross(u, np.cross(u, v) + w * v)


def heading_of(q: ArrayLike) -> float:
    """Yaw angle (radians) of the forward vector, 0 when facing -Z."""
    fwd = quat_rotate_vector(q, FRONT)
    return float(np.arctan2(-fwd[0], -fwd[2]))


def quat_from_heading(heading: float) -> np.ndarray:
    return quat_from_angle_axis(heading, UP)


@dataclass(frozen=True)
class SixDofPose:
    """Immutable orientation + position pair exchanged with callers."""
    rotation: np.ndarray
    translation: np.ndarray

    def __post_init__(self):
        translation = np.array(self.translation, dtype=np.float64)
        if translation.shape != (3,):
            raise ValueError(f"Translation must be a 3-vector, got shape {translation.shape}")
        if not np.all(np.isfinite(translation)):
            raise ValueError(f"Translation must be finite, got {translation}")
        rotation = np.array(self.rotation, dtype=np.float64)
        if not np.all(np.isfinite(rotation)):
            raise ValueError(f"Rotation must be finite, got {rotation}")
        rotation = quat_normalize(rotation)

        translation.setflags(write=False)
        rotation.setflags(write=False)
        object.__setattr__(self, "translation", translation)
        object.__setattr__(self, "rotation", rotation)

    @classmethod
    def from_position_rotation(cls, position: ArrayLike, rotation: ArrayLike) -> "SixDofPose":
        return cls(rotation=rotation, translation=position)

    @property
    def heading(self) -> float:
        return heading_of(self.rotation)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SixDofPose):
            return NotImplemented
        return (
            np.array_equal(self.rotation, other.rotation)
            and np.array_equal(self.translation, other.translation)
        )

    def __hash__(self) -> int:
        return hash((self.rotation.tobytes(), self.translation.tobytes()))

    def __repr__(self) -> str:
        t = self.translation
        return f"SixDofPose(translation=({t[0]:.3f}, {t[1]:.3f}, {t[2]:.3f}), heading={np.degrees(self.heading):.1f}deg)"
