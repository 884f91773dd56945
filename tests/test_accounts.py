from unittest.mock import Mock

import pytest
from solana.rpc.commitment import Finalized, Processed
from solana.rpc.types import MemcmpOpts
from solders.pubkey import Pubkey

from conftest import key
from gavel.accounts import AccountModel, AuctionModel, auction_account_parser
from gavel.auction.state import (
    Auction,
    AuctionDataExtended,
    BidderMetadata,
    BidderPot,
    EXTENDED_DATA_SIZE,
)
from gavel.errors import AccountNotFound, InvalidAccountData, InvalidOwner
from gavel.utils.solana import (
    Context,
    DataSizeFilter,
    KeyedAccount,
    MemcmpFilter,
    MemoryAccountSource,
    RawAccount,
    RpcAccountSource,
    explore,
)


@pytest.fixture
def model(source, program_id):
    return AuctionModel(source, program_id)


def test_load_decodes(model, source, program_id, auction):
    source.put(key(50), program_id, auction.to_bytes())
    assert model.load(key(50), Auction) == auction
    assert model.load_auction(key(50)) == auction


def test_load_missing(model):
    with pytest.raises(AccountNotFound):
        model.load(key(50), Auction)


def test_foreign_owner_rejected_even_if_bytes_decode(model, source, auction):
    source.put(key(50), key(201), auction.to_bytes())
    with pytest.raises(InvalidOwner) as exc:
        model.load(key(50), Auction)
    assert exc.value.owner == key(201)


def test_fixed_size_must_match(model, source, program_id):
    pot = BidderPot(key(1), key(2), key(3), False)
    source.put(key(50), program_id, pot.to_bytes() + b"\x00")
    with pytest.raises(InvalidAccountData):
        model.load_bidder_pot(key(50))


def test_fixable_below_minimum(model, source, program_id):
    source.put(key(50), program_id, bytes(100))
    with pytest.raises(InvalidAccountData):
        model.load(key(50), Auction)


def test_load_auction_with_extended(model, source, program_id, auction):
    ext = AuctionDataExtended(7, None, None, None, None)
    source.put(key(50), program_id, auction.to_bytes())
    source.put(key(51), program_id, ext.to_bytes().ljust(EXTENDED_DATA_SIZE, b"\x00"))
    loaded = model.load_auction(key(50), extended=key(51))
    assert loaded.total_uncancelled_bids == 7
    assert model.load_extended(key(51)) == ext


def test_load_many(model, source, program_id):
    pots = [BidderPot(key(i), key(i + 1), key(9), False) for i in (1, 3)]
    for i, pot in enumerate(pots):
        source.put(key(60 + i), program_id, pot.to_bytes())
    assert model.load_many([key(60), key(61)], BidderPot) == pots
    with pytest.raises(AccountNotFound):
        model.load_many([key(60), key(62)], BidderPot)


def _populate_bidders(source, program_id, auction_key, other_auction):
    for i, (bidder, target) in enumerate([(key(1), auction_key), (key(2), auction_key), (key(3), other_auction)]):
        source.put(key(70 + i), program_id, BidderPot(key(80 + i), bidder, target, False).to_bytes())
        source.put(key(90 + i), program_id, BidderMetadata(bidder, target, 10 * (i + 1), 1000 + i, False).to_bytes())


def test_bidder_scans_are_scoped_to_auction(model, source, program_id):
    auction_key, other = key(50), key(51)
    _populate_bidders(source, program_id, auction_key, other)

    pots = model.get_bidder_pots(auction_key)
    assert {p.pubkey for p in pots} == {key(70), key(71)}
    assert all(p.data.auction_act == auction_key for p in pots)

    metadata = model.get_bidder_metadata(auction_key)
    assert {m.data.bidder_pubkey for m in metadata} == {key(1), key(2)}


def test_find_auctions_by_authority(model, source, program_id, auction):
    source.put(key(50), program_id, auction.to_bytes())
    source.put(key(51), program_id, auction.to_bytes())
    _populate_bidders(source, program_id, key(50), key(51))

    found = model.find_auctions(authority=auction.authority)
    assert {a.pubkey for a in found} == {key(50), key(51)}
    assert model.find_auctions(authority=key(222)) == []


class _IgnoresFilters(MemoryAccountSource):
    def get_program_accounts(self, program_id, filters=()):
        return super().get_program_accounts(program_id)


def test_scan_enforces_exact_length(program_id):
    source = _IgnoresFilters()
    pot = BidderPot(key(1), key(2), key(3), False)
    source.put(key(50), program_id, pot.to_bytes())
    source.put(key(51), program_id, pot.to_bytes() + bytes(3))
    model = AccountModel(source, program_id)

    found = model.scan(BidderPot, [DataSizeFilter(97), MemcmpFilter(0, bytes(key(1)))])
    assert [f.pubkey for f in found] == [key(50)]


def test_scan_strict_raises_on_bad_shape(program_id, source):
    source.put(key(50), program_id, bytes(10))
    with pytest.raises(InvalidAccountData):
        AccountModel(source, program_id).scan(BidderPot)


def test_filters():
    data = bytes(key(4)) + bytes(8)
    assert DataSizeFilter(40).matches(data)
    assert not DataSizeFilter(41).matches(data)
    assert MemcmpFilter.for_pubkey(0, key(4)).matches(data)
    assert not MemcmpFilter(32, b"\x01").matches(data)
    assert not MemcmpFilter(39, b"\x00\x00").matches(data)


def test_account_parser_dispatch(program_id, auction):
    parser = auction_account_parser(program_id)
    pot = BidderPot(key(1), key(2), key(3), True)
    meta = BidderMetadata(key(1), key(3), 5, 6, False)
    ext = AuctionDataExtended(2, None, None, None, None)

    assert parser.parse(RawAccount(program_id, pot.to_bytes())) == pot
    assert parser.parse(RawAccount(program_id, meta.to_bytes())) == meta
    assert parser.parse(RawAccount(program_id, ext.to_bytes().ljust(EXTENDED_DATA_SIZE, b"\x00"))) == ext
    assert parser.parse(RawAccount(program_id, auction.to_bytes())) == auction
    with pytest.raises(ValueError):
        parser.parse(RawAccount(key(1), pot.to_bytes()))


def test_explore_uses_global_parser(program_id, source):
    pot = BidderPot(key(1), key(2), key(3), False)
    source.put(key(50), program_id, pot.to_bytes())
    Context.set_global_parser(auction_account_parser(program_id))
    try:
        details = explore(str(key(50)), source)
        assert details.data == pot.to_bytes()
        assert details.data_obj == pot
        assert explore(key(51), source).data_obj is None
    finally:
        Context.set_global_parser(None)


def test_rpc_source_translates_responses(program_id):
    client = Mock()
    client.get_account_info.return_value = Mock(value=None)
    rpc = RpcAccountSource(client)
    assert rpc.get_account(key(1)) is None

    client.get_account_info.return_value = Mock(value=Mock(owner=program_id, data=b"\x01\x02"))
    assert rpc.get_account(key(1)) == RawAccount(program_id, b"\x01\x02")

    client.get_program_accounts.return_value = Mock(
        value=[Mock(pubkey=key(5), account=Mock(owner=program_id, data=b"\x03"))]
    )
    result = rpc.get_program_accounts(program_id, [DataSizeFilter(97), MemcmpFilter.for_pubkey(64, key(9))])
    assert result == [KeyedAccount(key(5), RawAccount(program_id, b"\x03"))]

    filters = client.get_program_accounts.call_args.kwargs["filters"]
    assert filters[0] == 97
    assert isinstance(filters[1], MemcmpOpts)
    assert filters[1].offset == 64
    assert filters[1].bytes == str(key(9))


def test_rpc_source_falls_back_to_global_client(program_id):
    client = Mock()
    client.get_multiple_accounts.return_value = Mock(value=[None])
    old = Context.client
    Context.set_global_client(client)
    try:
        assert RpcAccountSource().get_multiple_accounts([key(1)]) == [None]
    finally:
        Context.set_global_client(old)


def test_find_auctions_skips_other_account_kinds(model, source, program_id, auction):
    source.put(key(50), program_id, auction.to_bytes())
    ext = AuctionDataExtended(2, None, None, None, None)
    source.put(key(51), program_id, ext.to_bytes().ljust(EXTENDED_DATA_SIZE, b"\x00"))
    _populate_bidders(source, program_id, key(50), key(52))

    found = model.find_auctions()
    assert [a.pubkey for a in found] == [key(50)]
    assert found[0].data == auction


def test_explicit_commitment_wins_over_environment(monkeypatch):
    monkeypatch.setenv("GAVEL_COMMITMENT", "processed")
    monkeypatch.setattr(Context, "commitment", None)
    assert Context.get_commitment() == Processed
    monkeypatch.setattr(Context, "commitment", Finalized)
    assert Context.get_commitment() == Finalized
