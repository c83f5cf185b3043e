import logging
from dataclasses import dataclass
from typing import Optional, Union

import pyarrow as pa

from geohasher.algorithms.geo_hash import GeoHasher, validate_precision

logger = logging.getLogger(__name__)

_geohasher = GeoHasher()


@dataclass(frozen=True)
class Unresolved:
    """Coordinates without a hash yet; any field may still be missing."""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    precision: Optional[float] = None


@dataclass(frozen=True)
class Resolved:
    """A known hash alongside the coordinates it was encoded from or decoded to."""
    hash: str
    latitude: float
    longitude: float
    precision: Optional[float]


class GeohashValue:
    """A geohash cell held either as coordinates or as a hash string.

    Each side is derived from the other on demand. Coordinates are encoded
    the first time the hash is read and the result is cached; assigning a
    hash decodes it right away. The cache lives in an explicit state:
    ``Unresolved`` until ``resolve()`` encodes, ``Resolved`` afterwards.

    Setting latitude, longitude or precision drops any cached hash but keeps
    the other two fields, so a value may hold a latitude with no longitude
    for a while. Encoding then fails with ``MissingCoordinate``.

    Assigning a hash sets latitude and longitude to the decoded center,
    rounded to the cell's error, and precision to the table value for the
    hash length.

    Two values are equal when their resolved hashes are.

    Attributes:
        state (Unresolved | Resolved): Current representation.

    Example:
        >>> value = GeohashValue.from_coordinates(57.64911, 10.40744, 2.4)
        >>> value.hash
        'u4pru'
        >>> value.latitude = 42.6  # hash is re-encoded on next read
        >>> GeohashValue.from_hash('ezs42').latitude
        42.6
        >>> len(value.neighbors())
        8

    """
    def __init__(self, state: Union[Unresolved, Resolved, None] = None):
        self._state = state if state is not None else Unresolved()

    @classmethod
    def from_coordinates(cls, latitude: Optional[float], longitude: Optional[float],
                         precision: Optional[float] = None) -> 'GeohashValue':
        if precision is not None:
            validate_precision(precision)
        return cls(Unresolved(latitude, longitude, precision))

    @classmethod
    def from_hash(cls, geohash: str) -> 'GeohashValue':
        value = cls()
        value.hash = geohash
        return value

    @property
    def state(self) -> Union[Unresolved, Resolved]:
        return self._state

    @property
    def is_resolved(self) -> bool:
        return isinstance(self._state, Resolved)

    def resolve(self) -> str:
        """Return the hash, encoding and caching it if needed"""
        state = self._state
        if isinstance(state, Resolved):
            return state.hash
        geohash = _geohasher.encode(state.latitude, state.longitude, state.precision)
        self._state = Resolved(geohash, state.latitude, state.longitude, state.precision)
        return geohash

    @property
    def hash(self) -> str:
        return self.resolve()

    @hash.setter
    def hash(self, geohash: str):
        latitude, longitude, precision = _geohasher.decode_center(geohash)
        self._state = Resolved(geohash.lower(), latitude, longitude, precision)
        logger.debug("Geohash set to %s, decoded to (%s, %s)", geohash, latitude, longitude)

    @property
    def latitude(self) -> Optional[float]:
        return self._state.latitude

    @latitude.setter
    def latitude(self, latitude: Optional[float]):
        self._unresolve(latitude=latitude)

    @property
    def longitude(self) -> Optional[float]:
        return self._state.longitude

    @longitude.setter
    def longitude(self, longitude: Optional[float]):
        self._unresolve(longitude=longitude)

    @property
    def precision(self) -> Optional[float]:
        """Precision in km"""
        return self._state.precision

    @precision.setter
    def precision(self, precision: Optional[float]):
        if precision is not None:
            validate_precision(precision)
        self._unresolve(precision=precision)

    def _unresolve(self, **changes):
        state = self._state
        fields = {
            'latitude': state.latitude,
            'longitude': state.longitude,
            'precision': state.precision,
        }
        fields.update(changes)
        if isinstance(state, Resolved):
            logger.debug("Dropping cached geohash %s", state.hash)
        self._state = Unresolved(**fields)

    def interval(self):
        """(lat, lon) AxisIntervals of the cell"""
        return _geohasher.decode_interval(self.resolve())

    def to_arrow(self) -> pa.StructScalar:
        return _geohasher.decode(self.resolve())

    def neighbors(self) -> list:
        return neighbors(self)

    def __eq__(self, other):
        if not isinstance(other, GeohashValue):
            return NotImplemented
        return self.resolve() == other.resolve()

    def __hash__(self):
        return hash(self.resolve())

    def __str__(self):
        return self.resolve()

    def __repr__(self):
        return f"GeohashValue({self._state!r})"


def neighbors(value: GeohashValue) -> list:
    """The 8 cells around value, at value's precision.

    Ordered by latitude offset -1, 0, 1 then longitude offset -1, 0, 1.
    Past a pole latitude is shifted by 180 degrees and past the antimeridian
    longitude by 360, which is not the true adjacent cell near the poles.
    """
    precision = value.precision
    return [
        GeohashValue.from_coordinates(lat, lon, precision)
        for lat, lon in _geohasher.neighbor_coordinates(value.resolve())
    ]
