from .addrs import (
    get_auction_addr,
    get_auction_extended_addr,
    get_bidder_metadata_addr,
    get_bidder_pot_addr,
)
