# src/blockmigrate/plugins/transforms/car_path.py
"""Optional rewrite of legacy CAR paths to content-addressed CAR keys.

Legacy paths look like:

    us-east-2/dotstorage-prod-0/raw/<root cid>/<upload id>/<base32 sha256 multihash>.car

and are rewritten to:

    us-west-2/carpark-prod-0/<car cid>/<car cid>.car

where <car cid> is the CIDv1 (codec 0x202, CAR) of the same multihash in
base32 multibase. Only applied when explicitly requested; the core
transform leaves CAR paths untouched.
"""

from dataclasses import replace

from multiformats import CID, multibase, multihash

from blockmigrate.contracts.records import BlockIndex
from blockmigrate.core.logging import get_logger

logger = get_logger(__name__)

CAR_CODEC = "car"
CID_VERSION = 1
SHA2_256 = "sha2-256"
BASE32 = "base32"
BASE32_PREFIX = "b"
_BASE32_ALPHABET = frozenset("abcdefghijklmnopqrstuvwxyz234567")
LEGACY_BUCKET_PREFIX = "dotstorage-"
CARPARK_PREFIX = "us-west-2/carpark-prod-0"
CAR_SUFFIX = ".car"


def to_car_cid(base32_multihash: str) -> str:
    """Convert a base32 (no multibase prefix) sha256 multihash to a CAR CID string.

    Args:
        base32_multihash: e.g. ciqjxmllx5y73brw6mv3pkvd7sotfk2turkupkq7tsgygrdy2yxibri

    Returns:
        CIDv1 string in base32 multibase, e.g. bagbaiera...

    Raises:
        ValueError: If the input is not a valid sha2-256 multihash.
    """
    text = base32_multihash.lower()
    if not text or not _BASE32_ALPHABET.issuperset(text):
        raise ValueError(f"not base32: {base32_multihash!r}")
    try:
        mh = multibase.decode(BASE32_PREFIX + text)
        # Checks both the hash function code and the declared digest length
        multihash.get(SHA2_256).unwrap(mh)
    except (ValueError, KeyError) as e:
        raise ValueError(f"not a {SHA2_256} multihash: {base32_multihash!r}") from e

    return str(CID(BASE32, CID_VERSION, CAR_CODEC, mh))


def to_car_key(key: str) -> str | None:
    """Convert a legacy bucket key to a CAR CID key where possible.

    Args:
        key: e.g. raw/bafy.../315318734258473269/ciqjxmll...ibri.car

    Returns:
        e.g. bagbaiera.../bagbaiera....car, the key unchanged if it is
        already a CAR CID key, or None if it cannot be converted.
    """
    if not key.endswith(CAR_SUFFIX):
        return None
    parts = key.split("/")
    if parts[0] == "raw":
        car_name = parts[-1]
        if car_name == CAR_SUFFIX:
            return None
        car_cid = to_car_cid(car_name[: -len(CAR_SUFFIX)])
        return f"{car_cid}/{car_cid}{CAR_SUFFIX}"
    if parts[0].startswith("bag"):
        return key
    return None


def maybe_upgrade_car_path(old_path: str) -> str:
    """Rewrite a legacy `dotstorage-*` CAR path to its carpark location.

    Paths outside legacy buckets, and paths whose key cannot be converted,
    are returned unchanged.

    Args:
        old_path: `<region>/<bucket>/<key>`
    """
    parts = old_path.split("/")
    if len(parts) < 3 or not parts[1].startswith(LEGACY_BUCKET_PREFIX):
        return old_path

    old_key = "/".join(parts[2:])
    try:
        new_key = to_car_key(old_key)
    except ValueError as e:
        logger.warning("car_path_upgrade_failed", car_path=old_path, error=str(e))
        return old_path
    if new_key is None:
        return old_path
    return f"{CARPARK_PREFIX}/{new_key}"


def upgrade_block_index(record: BlockIndex) -> BlockIndex:
    """Apply maybe_upgrade_car_path to every location of a record."""
    cars = tuple(replace(car, car_path=maybe_upgrade_car_path(car.car_path)) for car in record.cars)
    return replace(record, cars=cars)
