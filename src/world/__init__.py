"""
World primitives shared by the navigation stack.

- pose: quaternion helpers and the immutable SixDofPose value
- scene: SceneGraph / SceneNode transform hierarchy
"""

from .pose import (
    SixDofPose,
    heading_of,
    quat_from_angle_axis,
    quat_from_heading,
    quat_identity,
    quat_multiply,
    quat_normalize,
    quat_rotate_vector,
)
from .scene import SceneGraph, SceneNode

__all__ = [
    "SixDofPose",
    "heading_of",
    "quat_from_angle_axis",
    "quat_from_heading",
    "quat_identity",
    "quat_multiply",
    "quat_normalize",
    "quat_rotate_vector",
    "SceneGraph",
    "SceneNode",
]
