import logging
import math
import numbers
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Optional

import pyarrow as pa
import pyarrow.compute as pc

from geohasher.config import (
    BASE32,
    BITS_PER_CHAR,
    DEFAULT_LENGTH,
    LATITUDE_RANGE,
    LONGITUDE_RANGE,
    MAX_LENGTH,
    PRECISION_TABLE,
)
from geohasher.errors import InvalidHashCharacter, InvalidPrecision, MissingCoordinate

logger = logging.getLogger(__name__)

BASE32_MAP = {c: i for i, c in enumerate(BASE32)}

# 3x3 grid around a cell minus the center, latitude offset outermost
NEIGHBOR_OFFSETS = pa.array(
    [{'dlat': float(di), 'dlon': float(dj)}
     for di in (-1, 0, 1) for dj in (-1, 0, 1) if (di, dj) != (0, 0)],
    type=pa.struct([('dlat', pa.float64()), ('dlon', pa.float64())])
)

DECODED_TYPE = pa.struct([
    ('lat', pa.float64()),
    ('lon', pa.float64()),
    ('lat_err', pa.float64()),
    ('lon_err', pa.float64()),
    ('precision', pa.float64()),
])


class AxisInterval(NamedTuple):
    """Bounds of one axis as narrowed by a (partial) geohash."""
    lower: float
    upper: float
    half_width: float

    @property
    def midpoint(self) -> float:
        return (self.lower + self.upper) / 2

    @property
    def delta(self) -> float:
        return self.upper - self.lower

    def bisect(self, upper_half: bool) -> 'AxisInterval':
        """Keep one half of the interval, halving its error"""
        mid = self.midpoint
        if upper_half:
            return AxisInterval(mid, self.upper, self.half_width / 2)
        return AxisInterval(self.lower, mid, self.half_width / 2)


WORLD_LATITUDE = AxisInterval(*LATITUDE_RANGE, LATITUDE_RANGE[1])
WORLD_LONGITUDE = AxisInterval(*LONGITUDE_RANGE, LONGITUDE_RANGE[1])


def _steers_longitude(char_index: int, bit: int) -> bool:
    # even char/even bit or odd char/odd bit
    return (char_index & 1) == (bit & 1)


def encode_bits(char_index: int, latitude: float, longitude: float,
                lat_axis: AxisInterval, lon_axis: AxisInterval):
    """Encode the 5 bits of one geohash character.

    Args:
    char_index: Position of the character in the geohash
    latitude, longitude: Coordinate being encoded
    lat_axis, lon_axis: Axis bounds left by the previous characters
    Returns:
    (value 0-31, narrowed lat_axis, narrowed lon_axis)
    """
    value = 0
    for bit in range(BITS_PER_CHAR - 1, -1, -1):
        if _steers_longitude(char_index, bit):
            upper = longitude > lon_axis.midpoint
            lon_axis = lon_axis.bisect(upper)
        else:
            upper = latitude > lat_axis.midpoint
            lat_axis = lat_axis.bisect(upper)
        if upper:
            value |= 1 << bit
    return value, lat_axis, lon_axis


def decode_bits(char_index: int, value: int,
                lat_axis: AxisInterval, lon_axis: AxisInterval):
    """Narrow the axis bounds by the 5 bits of one geohash character"""
    for bit in range(BITS_PER_CHAR - 1, -1, -1):
        upper = bool(value & (1 << bit))
        if _steers_longitude(char_index, bit):
            lon_axis = lon_axis.bisect(upper)
        else:
            lat_axis = lat_axis.bisect(upper)
    return lat_axis, lon_axis


def validate_precision(precision) -> float:
    if (isinstance(precision, bool) or not isinstance(precision, numbers.Real)
            or not math.isfinite(precision) or precision <= 0):
        logger.debug("Rejecting precision %r", precision)
        raise InvalidPrecision(precision)
    return precision


def length_for_precision(precision: Optional[float]) -> int:
    """Geohash length whose cell error still covers `precision` km.

    Scans the precision table from the coarsest entry and stops at the first
    entry finer than the requested precision. Never shorter than 1 character.
    No precision means the default length.
    """
    if precision is None:
        return DEFAULT_LENGTH
    validate_precision(precision)
    length = 0
    while length < MAX_LENGTH and PRECISION_TABLE[length] >= precision:
        length += 1
    return max(1, length)


def precision_for_length(length: int) -> float:
    """Table precision (km) of a geohash of `length` characters"""
    if length < 1:
        raise ValueError(f"Geohash length must be at least 1, got {length}")
    return PRECISION_TABLE[min(length, MAX_LENGTH) - 1]


def _round_half_away(value: float, digits: int = 0) -> float:
    # Ties go away from zero: 22.5 -> 23, -112.5 -> -113
    return float(Decimal(repr(value)).quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP))


def _round_to_error(value: float, half_width: float) -> float:
    # Coarser cells keep fewer decimals
    digits = max(1, int(_round_half_away(-math.log10(half_width)))) - 1
    return _round_half_away(value, digits)


def _wrap(values: pa.Array, bound: float) -> pa.Array:
    """Shift values past +/-bound by one full span"""
    return pc.if_else(
        pc.less(values, -bound),
        pc.add(values, 2 * bound),
        pc.if_else(
            pc.greater(values, bound),
            pc.subtract(values, 2 * bound),
            values
        )
    )


class GeoHasher:
    """Geohash encoder/decoder.

    Geohashes are short base32 strings naming rectangular cells of the
    Earth's surface. Each character carries 5 bits, alternately bisecting
    longitude and latitude, longitude first. Longer hashes name smaller
    cells; the cell size of each length (1-12) is given in km by
    ``PRECISION_TABLE``.

    Precisions are expressed in km and mapped to a hash length: the longest
    hash whose cell error is still at least the requested precision.

    Attributes:
        precision (float | None): Default precision in km used by ``encode``.
        length (int): Hash length that precision maps to (10 when unset).

    Example:
        >>> geohasher = GeoHasher()
        >>> geohasher.encode(57.64911, 10.40744)
        'u4pruydqqv'
        >>> geohasher.encode(57.64911, 10.40744, precision=2.4)
        'u4pru'
        >>> geohasher.decode_center('ezs42')
        (42.6, -5.6, 2.4)
        >>> neighbors = geohasher.neighbor_coordinates('ezs42')  # 8 (lat, lon) pairs

    """
    def __init__(self, precision: Optional[float] = None):
        self.length = length_for_precision(precision)
        self.precision = precision

    def encode(self, lat: Optional[float], lon: Optional[float],
               precision: Optional[float] = None) -> str:
        """Encode coordinates to geohash"""
        if lat is None or lon is None:
            logger.debug("Cannot encode lat=%r lon=%r", lat, lon)
            raise MissingCoordinate(lat, lon)
        length = self.length if precision is None else length_for_precision(precision)

        lat_axis, lon_axis = WORLD_LATITUDE, WORLD_LONGITUDE
        chars = []
        for i in range(length):
            value, lat_axis, lon_axis = encode_bits(i, lat, lon, lat_axis, lon_axis)
            chars.append(BASE32[value])
        geohash = ''.join(chars)
        logger.debug("Encoded (%s, %s) at length %d to %s", lat, lon, length, geohash)
        return geohash

    def decode_interval(self, geohash: str):
        """Decode geohash to its cell bounds
        Returns:
        (lat AxisInterval, lon AxisInterval), each as (lower, upper, half_width)
        """
        if not isinstance(geohash, str) or not geohash:
            raise InvalidHashCharacter(geohash)

        lat_axis, lon_axis = WORLD_LATITUDE, WORLD_LONGITUDE
        for i, c in enumerate(geohash):
            if not c.isascii() or c.lower() not in BASE32_MAP:
                logger.debug("Invalid character %r in geohash %r", c, geohash)
                raise InvalidHashCharacter(geohash, i)
            value = BASE32_MAP[c.lower()]
            lat_axis, lon_axis = decode_bits(i, value, lat_axis, lon_axis)
        return lat_axis, lon_axis

    def decode_center(self, geohash: str):
        """Decode geohash to its rounded center
        Returns:
        (lat, lon, precision in km)
        """
        lat_axis, lon_axis = self.decode_interval(geohash)
        lat = _round_to_error(lat_axis.midpoint, lat_axis.half_width)
        lon = _round_to_error(lon_axis.midpoint, lon_axis.half_width)
        precision = precision_for_length(len(geohash))
        logger.debug("Decoded %s to (%s, %s) at %s km", geohash, lat, lon, precision)
        return lat, lon, precision

    def decode(self, geohash: str) -> pa.StructScalar:
        """Decode geohash to coordinates with error margins
        Returns:
        Struct with fields: lat, lon, lat_err, lon_err, precision
        """
        lat_axis, lon_axis = self.decode_interval(geohash)
        return pa.scalar({
            'lat': lat_axis.midpoint,
            'lon': lon_axis.midpoint,
            'lat_err': lat_axis.half_width,
            'lon_err': lon_axis.half_width,
            'precision': precision_for_length(len(geohash)),
        }, type=DECODED_TYPE)

    def neighbor_coordinates(self, geohash: str) -> list:
        """
        Centers of the 8 cells adjacent to geohash
        Args:
        geohash: Input geohash string
        Returns:
        (lat, lon) pairs ordered by latitude offset -1, 0, 1, then longitude
        offset -1, 0, 1. Coordinates past a pole or the antimeridian are
        shifted by 180 / 360 degrees.
        """
        lat_axis, lon_axis = self.decode_interval(geohash)
        new_lats = pc.add(
            pc.multiply(NEIGHBOR_OFFSETS.field('dlat'), lat_axis.delta),
            lat_axis.midpoint
        )
        new_lons = pc.add(
            pc.multiply(NEIGHBOR_OFFSETS.field('dlon'), lon_axis.delta),
            lon_axis.midpoint
        )
        new_lats = _wrap(new_lats, LATITUDE_RANGE[1])
        new_lons = _wrap(new_lons, LONGITUDE_RANGE[1])
        return list(zip(new_lats.to_pylist(), new_lons.to_pylist()))
