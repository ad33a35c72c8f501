#!/usr/bin/env python3
"""
GeodeticConverter: converts points and poses between named geo frames.

Frames are registered by EPSG code, well-known geographic coordinate
system, UTM zone, WKT or ENU origin, and looked up by name. One of the
frames can be declared equivalent to a TF frame (see tf_bridge).
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError

from geodetic_tf.frames import (
    WGS84_GEOCENTRIC,
    CrsFrame,
    EnuFrame,
    GeoFrame,
    crs_from_gcs_code,
    utm_crs,
)
from geodetic_tf.geo_utils.coordinates import Pose3D, orthonormalize
from geodetic_tf.geo_utils.recursive_config import FrameConfig


def _as_points(point) -> tuple[np.ndarray, bool]:
    points = np.asarray(point, dtype=float)
    if points.shape == (3,):
        return points.reshape((1, 3)), True
    if points.ndim == 2 and points.shape[1] == 3:
        return points, False
    raise ValueError(f"Expected a 3-vector or an (N, 3) array, got shape {points.shape}!")


class GeodeticConverter:
    """
    Registry of geo frames and conversions between them.
    """
    def __init__(self, logger=None):
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self._frames: dict[str, GeoFrame] = {}
        self._transformers: dict[tuple[CRS, CRS], Transformer] = {}
        self._tf_mapping: Optional[tuple[str, str]] = None

    # Frame registry

    def add_frame_by_epsg(self, name: str, code: int, swap_xy: bool = False, replace: bool = False) -> bool:
        return self._add_frame(name, lambda: CrsFrame(name, CRS.from_epsg(int(code)), swap_xy), replace)

    def add_frame_by_gcs_code(self, name: str, code: str, swap_xy: bool = False, replace: bool = False) -> bool:
        """Geographic frame from a name such as "WGS84" or "ETRS89"."""
        return self._add_frame(name, lambda: CrsFrame(name, crs_from_gcs_code(code), swap_xy), replace)

    def add_frame_by_utm(self, name: str, zone: int, hemisphere="N", swap_xy: bool = False, replace: bool = False) -> bool:
        """WGS84 UTM frame, coordinates (easting, northing, altitude) unless swapped."""
        return self._add_frame(name, lambda: CrsFrame(name, utm_crs(zone, hemisphere), swap_xy), replace)

    def add_frame_by_wkt(self, name: str, wkt: str, swap_xy: bool = False, replace: bool = False) -> bool:
        return self._add_frame(name, lambda: CrsFrame(name, CRS.from_wkt(wkt), swap_xy), replace)

    def add_frame_by_enu_origin(self, name: str, latitude: float, longitude: float,
                                altitude: float = 0.0, replace: bool = False) -> bool:
        """Local ENU frame at a WGS84 origin (degrees, ellipsoidal altitude)."""
        return self._add_frame(
            name, lambda: EnuFrame(name, float(latitude), float(longitude), float(altitude)), replace
        )

    def _add_frame(self, name: str, build, replace: bool) -> bool:
        if name in self._frames and not replace:
            self.logger.warning(f"Frame {name} already exists, not adding it again.")
            return False
        try:
            frame = build()
        except (CRSError, ValueError, TypeError) as e:
            self.logger.error(f"Failed to add frame {name}: {e}")
            return False
        if name in self._frames:
            self._transformers.clear()
        self._frames[name] = frame
        self.logger.debug(f"Added frame {frame.describe()}")
        return True

    def remove_frame(self, name: str) -> bool:
        if name not in self._frames:
            self.logger.warning(f"Cannot remove frame {name}, it does not exist.")
            return False
        del self._frames[name]
        self._transformers.clear()
        if self._tf_mapping is not None and self._tf_mapping[0] == name:
            self.logger.warning(f"Removed frame {name} was mapped to TF frame {self._tf_mapping[1]}.")
            self._tf_mapping = None
        return True

    def has_frame(self, name: str) -> bool:
        return name in self._frames

    def frame_names(self) -> list[str]:
        return list(self._frames)

    def get_frame(self, name: str) -> GeoFrame:
        if name not in self._frames:
            raise ValueError(f"Frame {name} is not registered!")
        return self._frames[name]

    # Conversions

    def can_convert(self, input_frame: str, output_frame: str) -> bool:
        return input_frame in self._frames and output_frame in self._frames

    def convert(self, input_frame: str, point, output_frame: str) -> np.ndarray:
        """
        Convert a point (3-vector) or points ((N, 3) array) between frames.
        The result has the shape of the input.
        """
        source = self.get_frame(input_frame)
        target = self.get_frame(output_frame)
        points, single = _as_points(point)
        result = self._convert_points(source, points, target)
        return result[0] if single else result

    def convert_pose(self, input_frame: str, pose: Pose3D, output_frame: str) -> Pose3D:
        """
        Convert a pose between frames.

        The orientation is relative to the local east/north/up axes of each
        frame at the pose's position (grid axes for projected frames), so it
        picks up meridian convergence and ENU tilt.
        """
        source = self.get_frame(input_frame)
        target = self.get_frame(output_frame)
        position = self._convert_points(source, pose.coordinates.reshape((1, 3)), target)[0]
        source_axes = self._frame_axes(source, pose.coordinates)
        target_axes = self._frame_axes(target, position)
        rot_matrix = target_axes.T @ source_axes @ pose.rot_matrix
        return Pose3D(position, orthonormalize(rot_matrix))

    def _convert_points(self, source: GeoFrame, points: np.ndarray, target: GeoFrame) -> np.ndarray:
        anchored = source.native_to_anchor(source.to_native(points))
        anchored = self._transform(source.anchor_crs, target.anchor_crs, anchored)
        return target.from_native(target.anchor_to_native(anchored))

    def _frame_axes(self, frame: GeoFrame, point: np.ndarray) -> np.ndarray:
        """Frame axes at `point` as orthonormal ECEF columns."""
        native = frame.to_native(np.asarray(point, dtype=float).reshape((1, 3)))
        axes = frame.exact_axes(native[0])
        if axes is not None:
            return axes
        # projected and geocentric frames: 1 m steps along each native axis
        samples = np.vstack([native, native + np.eye(3)])
        ecef = self._transform(frame.anchor_crs, WGS84_GEOCENTRIC, frame.native_to_anchor(samples))
        jacobian = (ecef[1:] - ecef[0]).T
        jacobian = jacobian / np.linalg.norm(jacobian, axis=0)
        return orthonormalize(jacobian)

    def _transform(self, source_crs: CRS, target_crs: CRS, points: np.ndarray) -> np.ndarray:
        if source_crs == target_crs:
            return points.copy()
        transformer = self._get_transformer(source_crs, target_crs)
        x, y, z = transformer.transform(points[:, 0], points[:, 1], points[:, 2], errcheck=True)
        return np.column_stack([x, y, z]).astype(float)

    def _get_transformer(self, source_crs: CRS, target_crs: CRS) -> Transformer:
        key = (source_crs, target_crs)
        if key not in self._transformers:
            self._transformers[key] = Transformer.from_crs(source_crs, target_crs, always_xy=True)
        return self._transformers[key]

    # TF mapping

    def set_tf_mapping(self, geo_frame: str, tf_frame: str) -> bool:
        """Declare geo frame `geo_frame` to be the same frame as TF frame `tf_frame`."""
        if geo_frame not in self._frames:
            self.logger.warning(f"Cannot map unknown geo frame {geo_frame} to TF frame {tf_frame}.")
            return False
        if self._frames[geo_frame].is_geographic:
            self.logger.warning(f"Cannot map geographic frame {geo_frame} to TF, it is not Cartesian.")
            return False
        self._tf_mapping = (geo_frame, tf_frame)
        return True

    @property
    def tf_mapping(self) -> Optional[tuple[str, str]]:
        return self._tf_mapping

    # Configuration

    def init_from_dict(self, config: dict) -> bool:
        """
        Load frames and TF mapping from a dict:

            frames:
              GPS: {type: GCSCode, code: WGS84}
              UTM: {type: UTM, zone: 32, hemisphere: N}
              ENU_NTNU: {type: ENUOrigin, latitude: 63.41, longitude: 10.40, altitude: 0.0}
            tf_mapping: {geo_tf: ENU_NTNU, tf: enu}
        """
        ok = True
        frames = config.get("frames") or {}
        if not frames:
            self.logger.warning("No frames configured.")
            ok = False
        for name, definition in frames.items():
            ok = self._add_frame_from_definition(str(name), definition) and ok

        mapping = config.get("tf_mapping")
        if mapping:
            geo_tf = mapping.get("geo_tf")
            tf = mapping.get("tf")
            if geo_tf is None or tf is None:
                self.logger.error("tf_mapping needs both 'geo_tf' and 'tf'.")
                ok = False
            else:
                ok = self.set_tf_mapping(str(geo_tf), str(tf)) and ok
        self.logger.info(f"Loaded {len(self._frames)} geo frames: {', '.join(self._frames)}")
        return ok

    def init_from_file(self, path: str, prefix: str = "geotf") -> bool:
        config = FrameConfig(path, logger=self.logger)
        return self.init_from_dict(config.section(prefix))

    def _add_frame_from_definition(self, name: str, definition) -> bool:
        if not isinstance(definition, dict):
            self.logger.error(f"Frame {name} must be a mapping, got {definition!r}.")
            return False
        definition = {str(k).lower(): v for k, v in definition.items()}
        frame_type = str(definition.get("type", "")).lower()
        swap_xy = definition.get("swap_xy", False)
        if not isinstance(swap_xy, bool):
            self.logger.error(f"Frame {name} has swap_xy {swap_xy!r}, expected true or false.")
            return False
        try:
            if frame_type == "epsgcode":
                return self.add_frame_by_epsg(name, definition["code"], swap_xy)
            if frame_type == "gcscode":
                return self.add_frame_by_gcs_code(name, definition["code"], swap_xy)
            if frame_type == "utm":
                return self.add_frame_by_utm(name, definition["zone"], definition.get("hemisphere", "N"), swap_xy)
            if frame_type == "wkt":
                return self.add_frame_by_wkt(name, definition["wkt"], swap_xy)
            if frame_type == "enuorigin":
                return self.add_frame_by_enu_origin(
                    name, definition["latitude"], definition["longitude"], definition.get("altitude", 0.0)
                )
        except KeyError as e:
            self.logger.error(f"Frame {name} of type {frame_type} is missing {e}.")
            return False
        self.logger.error(f"Frame {name} has unknown type {definition.get('type')!r}.")
        return False

    # Debug

    def describe_frames(self) -> list[str]:
        lines = [frame.describe() for frame in self._frames.values()]
        if self._tf_mapping is not None:
            lines.append(f"TF mapping: geo frame {self._tf_mapping[0]} == TF frame {self._tf_mapping[1]}")
        else:
            lines.append("TF mapping: none")
        return lines

    def write_debug_info(self) -> None:
        for line in self.describe_frames():
            self.logger.info(line)
