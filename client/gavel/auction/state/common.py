from enum import IntEnum


class AuctionState(IntEnum):
    CREATED = 0
    STARTED = 1
    ENDED = 2


class BidStateType(IntEnum):
    ENGLISH_AUCTION = 0
    OPEN_EDITION = 1


class PriceFloorType(IntEnum):
    NONE = 0
    MINIMUM = 1
    BLINDED_PRICE = 2
