from .common import AuctionState, BidStateType, PriceFloorType
from .price_floor import PriceFloor
from .auction import Auction, Bid, BidState
from .bidder import BIDDER_METADATA_SIZE, BIDDER_POT_SIZE, BidderMetadata, BidderPot
from .extended import EXTENDED_DATA_SIZE, AuctionDataExtended


def account_parser(data):
    """Pick the record kind from the account length; the program writes no tags."""
    if len(data) == BIDDER_METADATA_SIZE:
        return BidderMetadata.from_bytes(data)
    elif len(data) == BIDDER_POT_SIZE:
        return BidderPot.from_bytes(data)
    elif len(data) == EXTENDED_DATA_SIZE:
        return AuctionDataExtended.from_bytes(data)
    return Auction.from_bytes(data)


__all__ = [
    "AuctionState",
    "BidStateType",
    "PriceFloorType",
    "PriceFloor",
    "Auction",
    "Bid",
    "BidState",
    "BidderMetadata",
    "BidderPot",
    "AuctionDataExtended",
    "BIDDER_METADATA_SIZE",
    "BIDDER_POT_SIZE",
    "EXTENDED_DATA_SIZE",
    "account_parser",
]
