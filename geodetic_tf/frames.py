"""
Geo frame definitions for the GeodeticConverter.

Every frame converts between the coordinates a user passes in and the
"native" coordinates of an anchor CRS, in the easting/longitude-first
order of pyproj's ``always_xy`` transformers. Heights are ellipsoidal.
"""

from __future__ import annotations

import numpy as np
from pyproj import CRS, Transformer

WGS84_GEOCENTRIC = CRS.from_epsg(4978)
WGS84_GEOGRAPHIC = CRS.from_epsg(4979)

GCS_CODES = {
    "WGS84": 4326,
    "WGS72": 4322,
    "NAD27": 4267,
    "NAD83": 4269,
    "ETRS89": 4258,
}


def crs_from_gcs_code(code: str) -> CRS:
    """Well-known geographic coordinate system by name ("WGS84") or "EPSG:n"."""
    key = str(code).strip().upper()
    if key.startswith("EPSG:"):
        return CRS.from_epsg(int(key[len("EPSG:"):]))
    if key not in GCS_CODES:
        raise ValueError(f"Unknown geographic coordinate system {code}!")
    return CRS.from_epsg(GCS_CODES[key])


def parse_hemisphere(hemisphere) -> bool:
    """True for the northern hemisphere."""
    if isinstance(hemisphere, bool):
        return hemisphere
    key = str(hemisphere).strip().upper()
    if key in ("N", "NORTH"):
        return True
    if key in ("S", "SOUTH"):
        return False
    raise ValueError(f"Unknown hemisphere {hemisphere}!")


def utm_crs(zone: int, hemisphere="N") -> CRS:
    zone = int(zone)
    if not 1 <= zone <= 60:
        raise ValueError(f"UTM zone must be in 1..60, got {zone}!")
    base = 32600 if parse_hemisphere(hemisphere) else 32700
    return CRS.from_epsg(base + zone)


def enu_rotation(latitude: float, longitude: float) -> np.ndarray:
    """Columns are the east, north and up unit vectors in ECEF."""
    phi = np.radians(latitude)
    lam = np.radians(longitude)
    sin_phi, cos_phi = np.sin(phi), np.cos(phi)
    sin_lam, cos_lam = np.sin(lam), np.cos(lam)
    return np.array([
        [-sin_lam, -sin_phi * cos_lam, cos_phi * cos_lam],
        [cos_lam, -sin_phi * sin_lam, cos_phi * sin_lam],
        [0.0, cos_phi, sin_phi],
    ])


class GeoFrame:
    """Base class: a named frame anchored on a 3D CRS."""

    kind = "Frame"

    def __init__(self, name: str, anchor_crs: CRS, swap_xy: bool = False):
        self.name = name
        self.anchor_crs = anchor_crs
        self.swap_xy = bool(swap_xy)

    @property
    def is_geographic(self) -> bool:
        return False

    def exact_axes(self, native_point: np.ndarray):
        """Frame axes at a native point as ECEF columns, or None to sample them."""
        return None

    def _flips_xy(self) -> bool:
        return self.swap_xy

    def to_native(self, points: np.ndarray) -> np.ndarray:
        if self._flips_xy():
            points = points[:, [1, 0, 2]]
        return points

    def from_native(self, points: np.ndarray) -> np.ndarray:
        # swapping the first two columns is its own inverse
        return self.to_native(points)

    def native_to_anchor(self, points: np.ndarray) -> np.ndarray:
        return points

    def anchor_to_native(self, points: np.ndarray) -> np.ndarray:
        return points

    def describe(self) -> str:
        return f"{self.name}: {self.kind} {self.anchor_crs.name}"


class CrsFrame(GeoFrame):
    """
    A frame that is a coordinate reference system.

    Geographic frames take (latitude, longitude, altitude); projected and
    geocentric frames take (x, y, z). ``swap_xy`` exchanges the first two.
    """

    kind = "CRS"

    def __init__(self, name: str, crs: CRS, swap_xy: bool = False):
        super().__init__(name, crs.to_3d(), swap_xy)
        self.crs = crs

    @property
    def is_geographic(self) -> bool:
        return self.anchor_crs.is_geographic

    def exact_axes(self, native_point: np.ndarray):
        # latitude/longitude axes are angular; use the local ENU directly
        if not self.is_geographic:
            return None
        longitude, latitude = native_point[0], native_point[1]
        return enu_rotation(latitude, longitude)

    def _flips_xy(self) -> bool:
        # native order of a geographic CRS is (longitude, latitude)
        return self.swap_xy != self.is_geographic

    def describe(self) -> str:
        order = "swapped" if self.swap_xy else "default"
        epsg = self.crs.to_epsg()
        code = f"EPSG:{epsg}" if epsg is not None else "custom"
        return f"{self.name}: {self.kind} {code} ({self.crs.name}), {order} axis order"


class EnuFrame(GeoFrame):
    """Local East-North-Up tangent plane at a WGS84 origin."""

    kind = "ENU"

    def __init__(self, name: str, latitude: float, longitude: float, altitude: float = 0.0):
        if not -90.0 <= latitude <= 90.0:
            raise ValueError(f"Latitude must be in [-90, 90], got {latitude}!")
        if not -180.0 <= longitude <= 180.0:
            raise ValueError(f"Longitude must be in [-180, 180], got {longitude}!")
        super().__init__(name, WGS84_GEOCENTRIC)
        self.origin = (float(latitude), float(longitude), float(altitude))
        to_ecef = Transformer.from_crs(WGS84_GEOGRAPHIC, WGS84_GEOCENTRIC, always_xy=True)
        self.origin_ecef = np.asarray(
            to_ecef.transform(longitude, latitude, altitude, errcheck=True)
        )
        self.rotation = enu_rotation(latitude, longitude)

    def exact_axes(self, native_point: np.ndarray):
        return self.rotation

    def native_to_anchor(self, points: np.ndarray) -> np.ndarray:
        return points @ self.rotation.T + self.origin_ecef

    def anchor_to_native(self, points: np.ndarray) -> np.ndarray:
        return (points - self.origin_ecef) @ self.rotation

    def describe(self) -> str:
        lat, lon, alt = self.origin
        return f"{self.name}: {self.kind} origin lat={lat:.9f} lon={lon:.9f} alt={alt:.3f}"
