"""Web Mercator projection helpers for screen-space marker clustering.

Clustering radii are defined in screen pixels, so marker coordinates are
projected to "world pixels": the Web Mercator plane scaled to
TILE_SIZE_PX * 2**zoom, the same space deck.gl and slippy-map tiles use.

Latitudes are clamped to the Mercator limit (±85.05112878°).
"""

from math import atan, degrees, exp, hypot, log, pi, radians, tan

from trail_explorer.constants import ClusterConfig

# Beyond this latitude the Mercator y coordinate diverges
MAX_MERCATOR_LAT = 85.05112878


class GeoCalculator:
    """Static methods converting WGS84 degrees to and from world pixels.

    Coordinates are decimal degrees (lat, lon). World pixel origin is the
    top-left (north-west) corner of the projected world.
    """

    @staticmethod
    def world_size_px(zoom: float, tile_size: int = ClusterConfig.TILE_SIZE_PX) -> float:
        """Width (and height) of the projected world at a zoom level."""
        return tile_size * (2**zoom)

    @staticmethod
    def to_world_px(lat: float, lon: float, zoom: float) -> tuple[float, float]:
        """Project a point to world pixel coordinates.

        Args:
            lat: Latitude (decimal degrees)
            lon: Longitude (decimal degrees)
            zoom: Map zoom level

        Returns:
            Tuple (x, y) in pixels; y grows southwards.
        """
        lat = max(-MAX_MERCATOR_LAT, min(MAX_MERCATOR_LAT, lat))
        size = GeoCalculator.world_size_px(zoom)
        x = (lon + 180.0) / 360.0 * size
        y = (1.0 - log(tan(pi / 4 + radians(lat) / 2)) / pi) / 2.0 * size
        return x, y

    @staticmethod
    def from_world_px(x: float, y: float, zoom: float) -> tuple[float, float]:
        """Inverse of to_world_px, returning (lat, lon)."""
        size = GeoCalculator.world_size_px(zoom)
        lon = x / size * 360.0 - 180.0
        n = pi * (1.0 - 2.0 * y / size)
        lat = degrees(2 * atan(exp(n)) - pi / 2)
        return lat, lon

    @staticmethod
    def pixel_distance(a: tuple[float, float], b: tuple[float, float], zoom: float) -> float:
        """Screen distance in pixels between two (lat, lon) points at a zoom level."""
        ax, ay = GeoCalculator.to_world_px(lat=a[0], lon=a[1], zoom=zoom)
        bx, by = GeoCalculator.to_world_px(lat=b[0], lon=b[1], zoom=zoom)
        return hypot(ax - bx, ay - by)
