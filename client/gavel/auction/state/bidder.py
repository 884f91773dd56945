from gavel.utils.codec import U64, Bool, PublicKey, record


@record
class BidderMetadata:
    """Latest bid of one bidder in one auction."""

    bidder_pubkey: PublicKey
    auction_pubkey: PublicKey
    last_bid: U64
    last_bid_timestamp: U64
    cancelled: Bool


@record
class BidderPot:
    """Escrow for one bidder in one auction. ``emptied`` is set once, when paid out."""

    bidder_pot: PublicKey
    bidder_act: PublicKey
    auction_act: PublicKey
    emptied: Bool


BIDDER_METADATA_SIZE = BidderMetadata.calc_size()
BIDDER_POT_SIZE = BidderPot.calc_size()
