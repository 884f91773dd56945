"""Fetch, validate and decode program accounts.

Every loader runs the same checks before decoding: the account must exist,
be owned by the expected program, and have a length the record kind allows.
A record is either returned fully decoded or an error is raised.
"""
import logging
from dataclasses import dataclass
from typing import Generic, Iterable, List, Optional, Sequence, Type, TypeVar

from solders.pubkey import Pubkey

from gavel import program_ids as pids
from gavel.auction.state import (
    BIDDER_METADATA_SIZE,
    BIDDER_POT_SIZE,
    EXTENDED_DATA_SIZE,
    account_parser,
    Auction,
    AuctionDataExtended,
    BidderMetadata,
    BidderPot,
)
from gavel.errors import AccountNotFound, DeserializationError, InvalidAccountData, InvalidOwner
from gavel.utils.codec import Schema, decode, field_offset
from gavel.utils.solana import (
    AccountFilter,
    AccountParser,
    AccountSource,
    DataSizeFilter,
    MemcmpFilter,
    RawAccount,
    RpcAccountSource,
)

logger = logging.getLogger(__name__)

# sizes of the program's non-auction accounts
OTHER_ACCOUNT_SIZES = (BIDDER_METADATA_SIZE, BIDDER_POT_SIZE, EXTENDED_DATA_SIZE)

T = TypeVar("T")


@dataclass(frozen=True)
class ProgramAccount(Generic[T]):
    pubkey: Pubkey
    data: T


def check_shape(address: Pubkey, data: bytes, schema: Schema):
    """Fixed-size kinds need the exact length, fixable kinds at least the minimum."""
    expected = schema.fixed_size
    if expected is not None:
        expected += schema.header_size
        if len(data) != expected:
            raise InvalidAccountData(
                f"{schema.name} at {address} must be {expected} bytes, got {len(data)}"
            )
        return
    minimum = schema.header_size + schema.min_size
    if len(data) < minimum:
        raise InvalidAccountData(
            f"{schema.name} at {address} needs at least {minimum} bytes, got {len(data)}"
        )


def parse_account(address: Pubkey, account: Optional[RawAccount], record_cls: Type[T], owner: Pubkey) -> T:
    if account is None:
        raise AccountNotFound(address)
    if account.owner != owner:
        raise InvalidOwner(address, account.owner, owner)
    schema = record_cls.SCHEMA
    check_shape(address, account.data, schema)
    record = decode(account.data, schema)
    logger.debug("decoded %s at %s", schema.name, address)
    return record


class AccountModel:
    """Typed view over the accounts of one program."""

    def __init__(self, source: Optional[AccountSource] = None, program_id: Optional[Pubkey] = None):
        self.source = source if source is not None else RpcAccountSource()
        self.program_id = program_id if program_id is not None else pids.AUCTION_PROGRAM_ID

    def load(self, address: Pubkey, record_cls: Type[T]) -> T:
        return parse_account(address, self.source.get_account(address), record_cls, self.program_id)

    def load_many(self, addresses: Sequence[Pubkey], record_cls: Type[T]) -> List[T]:
        """Like ``load`` for each address; fails on the first missing or invalid one."""
        get_many = getattr(self.source, "get_multiple_accounts", None)
        if get_many is None:
            accounts = [self.source.get_account(a) for a in addresses]
        else:
            accounts = get_many(addresses)
        return [
            parse_account(address, account, record_cls, self.program_id)
            for address, account in zip(addresses, accounts)
        ]

    def scan(
            self,
            record_cls: Type[T],
            filters: Iterable[AccountFilter] = (),
            strict: bool = True,
            exclude_sizes: Iterable[int] = (),
    ) -> List[ProgramAccount[T]]:
        """All accounts of this program matching every filter, decoded as ``record_cls``.

        The source applies the filters; results are checked against them again
        and any account that does not satisfy them is dropped. With
        ``strict=False`` accounts that are not valid ``record_cls`` records are
        skipped instead of raising, for scans that cannot narrow by size.
        Accounts whose length is in ``exclude_sizes`` belong to other record
        kinds and are never decoded.
        """
        filters = list(filters)
        exclude_sizes = frozenset(exclude_sizes)
        results = []
        for keyed in self.source.get_program_accounts(self.program_id, filters):
            failed = [f for f in filters if not f.matches(keyed.account.data)]
            if failed:
                logger.warning("dropping %s: source returned it despite %s", keyed.pubkey, failed)
                continue
            if len(keyed.account.data) in exclude_sizes:
                logger.debug("skipping %s: length belongs to another account kind", keyed.pubkey)
                continue
            try:
                record = parse_account(keyed.pubkey, keyed.account, record_cls, self.program_id)
            except (InvalidAccountData, DeserializationError) as e:
                if strict:
                    raise
                logger.info("skipping %s: %s", keyed.pubkey, e)
                continue
            results.append(ProgramAccount(keyed.pubkey, record))
        logger.debug("scan for %s returned %d accounts", record_cls.__name__, len(results))
        return results


class AuctionModel(AccountModel):
    def load_auction(self, address: Pubkey, extended: Optional[Pubkey] = None) -> Auction:
        """Load an auction; with ``extended``, fold in its uncancelled bid count."""
        auction = self.load(address, Auction)
        if extended is not None:
            auction = auction.with_extended(self.load(extended, AuctionDataExtended))
        return auction

    def load_extended(self, address: Pubkey) -> AuctionDataExtended:
        return self.load(address, AuctionDataExtended)

    def load_bidder_metadata(self, address: Pubkey) -> BidderMetadata:
        return self.load(address, BidderMetadata)

    def load_bidder_pot(self, address: Pubkey) -> BidderPot:
        return self.load(address, BidderPot)

    def find_auctions(self, authority: Optional[Pubkey] = None) -> List[ProgramAccount[Auction]]:
        filters = []
        if authority is not None:
            filters.append(MemcmpFilter.for_pubkey(field_offset(Auction.SCHEMA, "authority"), authority))
        return self.scan(Auction, filters, strict=False, exclude_sizes=OTHER_ACCOUNT_SIZES)

    def get_bidder_pots(self, auction: Pubkey) -> List[ProgramAccount[BidderPot]]:
        return self.scan(
            BidderPot,
            [
                DataSizeFilter(BidderPot.calc_size()),
                MemcmpFilter.for_pubkey(field_offset(BidderPot.SCHEMA, "auction_act"), auction),
            ],
        )

    def get_bidder_metadata(self, auction: Pubkey) -> List[ProgramAccount[BidderMetadata]]:
        return self.scan(
            BidderMetadata,
            [
                DataSizeFilter(BidderMetadata.calc_size()),
                MemcmpFilter.for_pubkey(field_offset(BidderMetadata.SCHEMA, "auction_pubkey"), auction),
            ],
        )


def auction_account_parser(program_id: Optional[Pubkey] = None) -> AccountParser:
    """An ``AccountParser`` that knows the auction program's account kinds."""
    parser = AccountParser()
    parser.register_parser(program_id if program_id is not None else pids.AUCTION_PROGRAM_ID, account_parser)
    return parser
