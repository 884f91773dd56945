import pytest
from solders.pubkey import Pubkey

from gavel.auction.state import (
    Auction,
    AuctionState,
    Bid,
    BidState,
    BidStateType,
    PriceFloor,
)
from gavel.utils.solana import MemoryAccountSource


def key(n: int) -> Pubkey:
    return Pubkey.from_bytes(bytes([n]) * 32)


@pytest.fixture
def program_id():
    return key(200)


@pytest.fixture
def source():
    return MemoryAccountSource()


@pytest.fixture
def bidders():
    return key(1), key(2), key(3)


@pytest.fixture
def bid_state(bidders):
    a, b, c = bidders
    return BidState(
        type=BidStateType.ENGLISH_AUCTION,
        bids=(Bid(a, 10), Bid(b, 20), Bid(c, 30)),
        max=2,
    )


@pytest.fixture
def auction(bid_state):
    return Auction(
        authority=key(100),
        token_mint=key(101),
        last_bid=1_650_000_000,
        ended_at=None,
        end_auction_at=1_650_086_400,
        auction_gap=None,
        price_floor=PriceFloor.minimum(5),
        state=AuctionState.STARTED,
        bid_state=bid_state,
    )
