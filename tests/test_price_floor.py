import pytest

from gavel.auction.state import PriceFloor, PriceFloorType
from gavel.errors import BlindedPriceError


def test_minimum_round_trip():
    floor = PriceFloor.minimum(42)
    decoded = PriceFloor.decode(PriceFloorType.MINIMUM, floor.encode())
    assert decoded == floor
    assert decoded.min_price == 42
    assert PriceFloor.from_bytes(floor.to_bytes()) == floor


def test_minimum_hash_layout():
    floor = PriceFloor.minimum(0x0102030405060708)
    assert floor.encode() == bytes([8, 7, 6, 5, 4, 3, 2, 1]) + bytes(24)
    assert floor.to_bytes() == b"\x01" + floor.encode()


def test_minimum_from_raw_hash():
    raw = (1000).to_bytes(8, "little") + bytes(24)
    floor = PriceFloor.minimum(hash=raw)
    assert floor.min_price == 1000
    assert floor == PriceFloor.minimum(1000)


def test_none_is_all_zero():
    floor = PriceFloor.none()
    assert floor.encode() == bytes(32)
    assert floor.to_bytes() == bytes(33)
    assert floor.min_price is None
    assert floor.accepts(0)


def test_minimum_accepts():
    floor = PriceFloor.minimum(100)
    assert floor.accepts(100)
    assert floor.accepts(101)
    assert not floor.accepts(99)


def test_blinded_price_is_opaque():
    commitment = bytes(range(32))
    floor = PriceFloor.blinded(commitment)
    assert floor.min_price is None
    assert PriceFloor.from_bytes(floor.to_bytes()) == floor
    with pytest.raises(BlindedPriceError):
        floor.accepts(10)


def test_bad_hash_length():
    with pytest.raises(ValueError):
        PriceFloor.blinded(bytes(31))
    with pytest.raises(ValueError):
        PriceFloor.minimum(1 << 64)


def test_minimum_hash_tail_must_be_zero():
    raw = (1000).to_bytes(8, "little") + b"\x01" + bytes(23)
    with pytest.raises(ValueError):
        PriceFloor.minimum(hash=raw)
