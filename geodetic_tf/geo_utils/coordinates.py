from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation


def _as_coordinates(coordinates) -> np.ndarray:
    if coordinates is None:
        coordinates = np.zeros((3,))
    elif isinstance(coordinates, (tuple, list)):
        coordinates = np.asarray(coordinates, dtype=float)
    elif isinstance(coordinates, np.ndarray):
        coordinates = coordinates.astype(float).reshape((-1,))
    if coordinates.shape != (3,):
        raise ValueError(f"Expected 3 coordinates, got shape {coordinates.shape}!")
    return coordinates


def _as_rot_matrix(rot_matrix) -> np.ndarray:
    if rot_matrix is None:
        rot_matrix = np.eye(3)
    elif isinstance(rot_matrix, Rotation):
        rot_matrix = rot_matrix.as_matrix()
    elif isinstance(rot_matrix, np.ndarray):
        rot_matrix = rot_matrix.astype(float)
    if rot_matrix.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 rotation matrix, got shape {rot_matrix.shape}!")
    return rot_matrix


class Pose3D:
    """Rigid pose: a position and a rotation matrix, both in the same frame."""

    def __init__(
        self,
        coordinates: Optional[(Sequence[float] | np.ndarray)] = None,
        rot_matrix: Optional[(np.ndarray | Rotation)] = None,
    ):
        self.coordinates: np.ndarray = _as_coordinates(coordinates)
        self.rot_matrix: np.ndarray = _as_rot_matrix(rot_matrix)

    def as_matrix(self) -> np.ndarray:
        matrix = np.eye(4)
        matrix[:3, :3] = self.rot_matrix
        matrix[:3, 3] = self.coordinates
        return matrix

    def as_translation_quaternion(self) -> tuple[np.ndarray, np.ndarray]:
        """Returns (translation, quaternion) with the quaternion in ROS (x, y, z, w) order."""
        quaternion = Rotation.from_matrix(self.rot_matrix).as_quat()
        return self.coordinates.copy(), quaternion

    def set_rot_from_rpy(self, rpy: tuple[float, float, float], degrees: bool = False) -> None:
        self.rot_matrix = Rotation.from_euler("xyz", rpy, degrees=degrees).as_matrix()

    def rpy(self, degrees: bool = False) -> np.ndarray:
        return Rotation.from_matrix(self.rot_matrix).as_euler("xyz", degrees=degrees)

    def inverse(self) -> Pose3D:
        return self.from_matrix(np.linalg.inv(self.as_matrix()))

    def __matmul__(self, other):
        if not isinstance(other, Pose3D):
            return NotImplemented
        return Pose3D.from_matrix(self.as_matrix() @ other.as_matrix())

    def __str__(self):
        coords = (f"{coord:.3f}" for coord in self.coordinates)
        coords = f'({", ".join(coords)})'
        rpy = (f"{angle:.3f}" for angle in self.rpy())
        rpy = f'({", ".join(rpy)})'
        return f"Pose3D(coords={coords}, rpy={rpy})"

    def __repr__(self):
        return self.__str__()

    def __copy__(self):
        return Pose3D(self.coordinates.copy(), self.rot_matrix.copy())

    def copy(self):
        return self.__copy__()

    @staticmethod
    def from_matrix(matrix: np.ndarray) -> Pose3D:
        if matrix.shape != (4, 4):
            raise ValueError(f"Expected a 4x4 matrix, got shape {matrix.shape}!")
        return Pose3D(matrix[:3, 3], matrix[:3, :3])

    @staticmethod
    def from_translation_quaternion(
        translation: Sequence[float], quaternion: Sequence[float]
    ) -> Pose3D:
        rotation = Rotation.from_quat(np.asarray(quaternion, dtype=float))
        return Pose3D(np.asarray(translation, dtype=float), rotation)


def orthonormalize(matrix: np.ndarray) -> np.ndarray:
    """Closest rotation-like matrix (orthonormal columns) in the Frobenius sense."""
    U, _, VT = np.linalg.svd(matrix, full_matrices=True)
    return np.dot(U, VT)
