from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from solders.pubkey import Pubkey

from gavel.auction.state import Auction, BidderMetadata, BidderPot


class Disposition(Enum):
    WON = "won"  # claimable by the auction authority
    REFUNDABLE = "refundable"  # owed back to the bidder
    SETTLED = "settled"  # pot already emptied or nothing held


@dataclass(frozen=True)
class EscrowPosition:
    bidder: Pubkey
    bidder_pot: Optional[Pubkey]
    last_bid: int
    cancelled: bool
    emptied: bool
    rank: Optional[int]

    @property
    def escrowed(self) -> int:
        if self.emptied or self.cancelled:
            return 0
        return self.last_bid

    @property
    def disposition(self) -> Disposition:
        if self.escrowed == 0:
            return Disposition.SETTLED
        if self.rank is not None:
            return Disposition.WON
        return Disposition.REFUNDABLE


def escrow_positions(
        auction: Auction,
        metadata: Iterable[BidderMetadata],
        pots: Iterable[BidderPot],
) -> List[EscrowPosition]:
    """Join each bidder's metadata with its pot and its rank in ``auction``.

    Metadata is keyed by bidder wallet; pots are matched through ``bidder_act``.
    A bidder without a pot is reported with ``bidder_pot=None`` and treated as
    already emptied. Open editions have no winner window, so every bidder
    still in ``bids`` is ranked.
    """
    bid_state = auction.bid_state
    rank_of = bid_state.winner_index if bid_state.is_capped else bid_state.rank_of
    pots_by_bidder: Dict[Pubkey, BidderPot] = {pot.bidder_act: pot for pot in pots}
    positions = []
    for meta in metadata:
        pot = pots_by_bidder.get(meta.bidder_pubkey)
        positions.append(
            EscrowPosition(
                bidder=meta.bidder_pubkey,
                bidder_pot=pot.bidder_pot if pot is not None else None,
                last_bid=meta.last_bid,
                cancelled=meta.cancelled,
                emptied=pot.emptied if pot is not None else True,
                rank=rank_of(meta.bidder_pubkey),
            )
        )
    return positions


def total_escrowed(positions: Iterable[EscrowPosition]) -> int:
    return sum(p.escrowed for p in positions)


def total_refundable(positions: Iterable[EscrowPosition]) -> int:
    return sum(p.escrowed for p in positions if p.disposition == Disposition.REFUNDABLE)
