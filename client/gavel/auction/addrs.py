from typing import Optional, Tuple

from solders.pubkey import Pubkey

from gavel import program_ids as pids
from gavel.utils.pda import find_program_address

PREFIX = b"auction"
EXTENDED = b"metadata"


def get_auction_addr(
        resource: Pubkey,
        program_id: Optional[Pubkey] = None,
) -> Tuple[Pubkey, int]:
    if program_id is None:
        program_id = pids.AUCTION_PROGRAM_ID
    return find_program_address(
        seeds=[PREFIX, bytes(program_id), bytes(resource)],
        program_id=program_id,
    )


def get_auction_extended_addr(
        resource: Pubkey,
        program_id: Optional[Pubkey] = None,
) -> Tuple[Pubkey, int]:
    if program_id is None:
        program_id = pids.AUCTION_PROGRAM_ID
    return find_program_address(
        seeds=[PREFIX, bytes(program_id), bytes(resource), EXTENDED],
        program_id=program_id,
    )


def get_bidder_pot_addr(
        auction: Pubkey,
        bidder: Pubkey,
        program_id: Optional[Pubkey] = None,
) -> Tuple[Pubkey, int]:
    if program_id is None:
        program_id = pids.AUCTION_PROGRAM_ID
    return find_program_address(
        seeds=[PREFIX, bytes(program_id), bytes(auction), bytes(bidder)],
        program_id=program_id,
    )


def get_bidder_metadata_addr(
        auction: Pubkey,
        bidder: Pubkey,
        program_id: Optional[Pubkey] = None,
) -> Tuple[Pubkey, int]:
    if program_id is None:
        program_id = pids.AUCTION_PROGRAM_ID
    return find_program_address(
        seeds=[PREFIX, bytes(program_id), bytes(auction), bytes(bidder), EXTENDED],
        program_id=program_id,
    )
