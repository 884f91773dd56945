import dataclasses
from typing import Optional

import pandas as pd
from solders.pubkey import Pubkey

from gavel.utils.codec import U64, Enum, Option, PublicKey, Vec, record

from .common import AuctionState, BidStateType
from .price_floor import PriceFloor


@record
class Bid:
    key: PublicKey
    amount: U64


@record
class BidState:
    """Bids in the order they were placed, plus the number of winner slots.

    The newest bid holds rank 0. Only the newest ``max`` bids are winning.
    """

    type: Enum[BidStateType]
    bids: Vec[Bid]
    max: U64

    def _index_for(self, rank: int) -> Optional[int]:
        idx = len(self.bids) - rank - 1
        if 0 <= idx < len(self.bids):
            return idx
        return None

    def winner_at(self, rank: int) -> Optional[Pubkey]:
        idx = self._index_for(rank)
        if idx is None:
            return None
        return self.bids[idx].key

    def amount_at(self, rank: int) -> Optional[int]:
        idx = self._index_for(rank)
        if idx is None:
            return None
        return self.bids[idx].amount

    def rank_of(self, bidder: Pubkey) -> Optional[int]:
        """Rank of ``bidder``'s earliest bid, ignoring the winner window.

        The earliest position in ``bids`` is, after the inversion, the highest
        rank the bidder holds.
        """
        for i, bid in enumerate(self.bids):
            if bid.key == bidder:
                return len(self.bids) - i - 1
        return None

    def winner_index(self, bidder: Pubkey) -> Optional[int]:
        """Rank of ``bidder`` if it is inside the winner window."""
        rank = self.rank_of(bidder)
        if rank is not None and rank < self.max:
            return rank
        return None

    def is_winner(self, bidder: Pubkey) -> bool:
        return self.winner_index(bidder) is not None

    @property
    def is_capped(self) -> bool:
        if self.type == BidStateType.ENGLISH_AUCTION:
            return True
        elif self.type == BidStateType.OPEN_EDITION:
            return False
        raise ValueError(f"unknown bid state type {self.type!r}")

    def winners(self):
        """(rank, bidder, amount) for each winning bid, best first."""
        count = len(self.bids) if not self.is_capped else min(len(self.bids), self.max)
        return [(rank, self.winner_at(rank), self.amount_at(rank)) for rank in range(count)]

    def to_frame(self) -> pd.DataFrame:
        rows = [
            (rank, str(self.winner_at(rank)), self.amount_at(rank), not self.is_capped or rank < self.max)
            for rank in range(len(self.bids))
        ]
        return pd.DataFrame(rows, columns=["Rank", "Bidder", "Amount", "Winner"])


@record
class Auction:
    authority: PublicKey
    token_mint: PublicKey
    last_bid: Option[U64]
    ended_at: Option[U64]
    end_auction_at: Option[U64]
    auction_gap: Option[U64]
    price_floor: PriceFloor
    state: Enum[AuctionState]
    bid_state: BidState
    # kept by the program in the companion extended account
    total_uncancelled_bids: int = 0

    def with_extended(self, extended) -> "Auction":
        return dataclasses.replace(self, total_uncancelled_bids=extended.total_uncancelled_bids)

    @property
    def is_ended(self) -> bool:
        return self.state == AuctionState.ENDED

    def winner_at(self, rank: int) -> Optional[Pubkey]:
        return self.bid_state.winner_at(rank)

    def amount_at(self, rank: int) -> Optional[int]:
        return self.bid_state.amount_at(rank)

    def winner_index(self, bidder: Pubkey) -> Optional[int]:
        return self.bid_state.winner_index(bidder)
