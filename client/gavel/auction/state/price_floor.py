from typing import Optional

from gavel.errors import BlindedPriceError
from gavel.utils.codec import Bytes, Enum, record

from .common import PriceFloorType

HASH_SIZE = 32
MIN_PRICE_SIZE = 8
EMPTY_HASH = bytes(HASH_SIZE)


def encode_min_price(price: int) -> bytes:
    return price.to_bytes(MIN_PRICE_SIZE, byteorder="little") + bytes(HASH_SIZE - MIN_PRICE_SIZE)


def decode_min_price(hash: bytes) -> int:
    return int.from_bytes(hash[:MIN_PRICE_SIZE], byteorder="little")


@record
class PriceFloor:
    """Minimum acceptable bid, stored as a tag plus a 32 byte field.

    For ``MINIMUM`` the first 8 bytes of ``hash`` are the little-endian floor
    and the rest are zero. For ``BLINDED_PRICE`` the whole field is an opaque
    commitment. For ``NONE`` the field is zeroed.
    """

    type: Enum[PriceFloorType]
    hash: Bytes[HASH_SIZE]

    def __post_init__(self):
        if len(self.hash) != HASH_SIZE:
            raise ValueError(f"price floor hash must be {HASH_SIZE} bytes, got {len(self.hash)}")

    @classmethod
    def none(cls) -> "PriceFloor":
        return cls(PriceFloorType.NONE, EMPTY_HASH)

    @classmethod
    def minimum(cls, min_price: Optional[int] = None, hash: Optional[bytes] = None) -> "PriceFloor":
        if min_price is not None:
            if not 0 <= min_price < 1 << 64:
                raise ValueError(f"minimum price {min_price} does not fit in a u64")
            return cls(PriceFloorType.MINIMUM, encode_min_price(min_price))
        if hash is None:
            return cls(PriceFloorType.MINIMUM, EMPTY_HASH)
        if any(hash[MIN_PRICE_SIZE:]):
            raise ValueError("a minimum price floor keeps bytes 8..32 of its hash zero")
        return cls(PriceFloorType.MINIMUM, hash)

    @classmethod
    def blinded(cls, hash: bytes) -> "PriceFloor":
        return cls(PriceFloorType.BLINDED_PRICE, hash)

    @classmethod
    def decode(cls, tag: int, hash: bytes) -> "PriceFloor":
        return cls(PriceFloorType(tag), hash)

    def encode(self) -> bytes:
        return self.hash

    @property
    def min_price(self) -> Optional[int]:
        if self.type == PriceFloorType.MINIMUM:
            return decode_min_price(self.hash)
        elif self.type in (PriceFloorType.NONE, PriceFloorType.BLINDED_PRICE):
            return None
        raise ValueError(f"unknown price floor type {self.type!r}")

    def accepts(self, amount: int) -> bool:
        if self.type == PriceFloorType.NONE:
            return True
        elif self.type == PriceFloorType.MINIMUM:
            return amount >= decode_min_price(self.hash)
        elif self.type == PriceFloorType.BLINDED_PRICE:
            raise BlindedPriceError("a blinded price floor can only be checked by revealing the price")
        raise ValueError(f"unknown price floor type {self.type!r}")
