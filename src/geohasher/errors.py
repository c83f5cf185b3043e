from typing import Optional


class GeohashError(ValueError):
    """Base class for geohash codec failures."""


class MissingCoordinate(GeohashError):
    """Raised when encoding without both latitude and longitude."""
    def __init__(self, latitude=None, longitude=None):
        missing = [name for name, value in (('latitude', latitude), ('longitude', longitude))
                   if value is None]
        super().__init__(f"Cannot encode geohash, missing {' and '.join(missing)}")
        self.missing = tuple(missing)


class InvalidHashCharacter(GeohashError):
    """Raised when a geohash contains a character outside the base32 alphabet."""
    def __init__(self, geohash: str, position: Optional[int] = None):
        self.geohash = geohash
        self.position = position
        if position is None:
            self.character = None
            message = "Geohash must be a non-empty string"
        else:
            self.character = geohash[position]
            message = f"Invalid geohash character {self.character!r} at position {position} in {geohash!r}"
        super().__init__(message)


class InvalidPrecision(GeohashError):
    """Raised for a precision that is not a positive, finite number of km."""
    def __init__(self, precision):
        self.precision = precision
        super().__init__(f"Precision must be a positive finite number of km, got {precision!r}")
