"""
Minimal scene graph.

Nodes carry a local rotation + translation relative to their parent. Agents
own a node in the live scene; the follower owns scratch nodes in a private
graph so "what if" moves never touch live state.
"""
from typing import List, Optional

import numpy as np

from .pose import (
    ArrayLike,
    SixDofPose,
    UP,
    quat_from_angle_axis,
    quat_identity,
    quat_multiply,
    quat_normalize,
    quat_rotate_vector,
)


class SceneNode:
    def __init__(self, parent: Optional["SceneNode"] = None, name: str = ""):
        self.name = name
        self._parent = parent
        self._children: List["SceneNode"] = []
        self._rotation = quat_identity()
        self._translation = np.zeros(3)
        if parent is not None:
            parent._children.append(self)

    @property
    def parent(self) -> Optional["SceneNode"]:
        return self._parent

    @property
    def children(self) -> List["SceneNode"]:
        return list(self._children)

    @property
    def rotation(self) -> np.ndarray:
        return self._rotation.copy()

    @rotation.setter
    def rotation(self, q: ArrayLike) -> None:
        self._rotation = quat_normalize(q)

    @property
    def translation(self) -> np.ndarray:
        return self._translation.copy()

    @translation.setter
    def translation(self, t: ArrayLike) -> None:
        t = np.array(t, dtype=np.float64)
        if t.shape != (3,):
            raise ValueError(f"Translation must be a 3-vector, got shape {t.shape}")
        self._translation = t

    def absolute_rotation(self) -> np.ndarray:
        if self._parent is None:
            return self.rotation
        return quat_normalize(quat_multiply(self._parent.absolute_rotation(), self._rotation))

    def absolute_translation(self) -> np.ndarray:
        if self._parent is None:
            return self.translation
        return self._parent.absolute_translation() + quat_rotate_vector(
            self._parent.absolute_rotation(), self._translation
        )

    def set_pose(self, rotation: ArrayLike, translation: ArrayLike) -> None:
        """Overwrite the local transform. Both arrays are copied."""
        self.rotation = rotation
        self.translation = translation

    def copy_transform_from(self, other: "SceneNode") -> None:
        self.set_pose(other._rotation, other._translation)

    def pose(self) -> SixDofPose:
        return SixDofPose(rotation=self._rotation, translation=self._translation)

    def rotate_local(self, theta: float, axis: ArrayLike = UP) -> None:
        """Rotate about an axis expressed in the node's own frame."""
        self._rotation = quat_normalize(
            quat_multiply(self._rotation, quat_from_angle_axis(theta, axis))
        )

    def translate_local(self, offset: ArrayLike) -> None:
        """Translate by an offset expressed in the node's own frame."""
        self._translation = self._translation + quat_rotate_vector(self._rotation, offset)

    def __repr__(self) -> str:
        t = self._translation
        return f"SceneNode(name={self.name!r}, translation=({t[0]:.3f}, {t[1]:.3f}, {t[2]:.3f}))"


class SceneGraph:
    """Owns a root node; every node created through it hangs off the root."""

    def __init__(self):
        self._root = SceneNode(name="root")

    @property
    def root(self) -> SceneNode:
        return self._root

    def create_node(self, name: str = "") -> SceneNode:
        return SceneNode(parent=self._root, name=name)

    def __len__(self) -> int:
        return len(self._root.children)
