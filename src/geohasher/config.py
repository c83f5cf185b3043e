# Geohash domain constants.

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5

# Approximate cell error in km, indexed by geohash length - 1.
PRECISION_TABLE = (
    2500,      # 1
    630,       # 2
    78,        # 3
    20,        # 4
    2.4,       # 5
    0.61,      # 6
    0.076,     # 7
    0.019,     # 8
    0.00478,   # 9
    0.00060,   # 10
    0.000075,  # 11
    0.000018,  # 12
)
MAX_LENGTH = len(PRECISION_TABLE)
DEFAULT_LENGTH = 10

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)
