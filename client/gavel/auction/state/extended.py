from typing import Optional

from gavel.utils.codec import U8, U64, Bytes, Option, record

AUCTION_NAME_SIZE = 32
# allocation size of the account; the record itself is variable length
EXTENDED_DATA_SIZE = 8 + 9 + 2 + 200


@record
class AuctionDataExtended:
    total_uncancelled_bids: U64
    tick_size: Option[U64]
    gap_tick_size_percentage: Option[U8]
    instant_sale_price: Option[U64]
    name: Option[Bytes[AUCTION_NAME_SIZE]]

    @property
    def display_name(self) -> Optional[str]:
        if self.name is None:
            return None
        return self.name.rstrip(b"\x00").decode("utf-8", errors="replace")
