import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Union

import base58
from solana.rpc.api import Client
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.types import MemcmpOpts
from solders.pubkey import Pubkey

logger = logging.getLogger(__name__)

RPC_URL_ENV = "GAVEL_RPC_URL"
COMMITMENT_ENV = "GAVEL_COMMITMENT"
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"


@dataclass(frozen=True)
class RawAccount:
    owner: Pubkey
    data: bytes


@dataclass(frozen=True)
class KeyedAccount:
    pubkey: Pubkey
    account: RawAccount


@dataclass(frozen=True)
class MemcmpFilter:
    """Match accounts whose data holds ``expected`` at ``offset``."""

    offset: int
    expected: bytes

    @classmethod
    def for_pubkey(cls, offset: int, key: Pubkey) -> "MemcmpFilter":
        return cls(offset, bytes(key))

    def matches(self, data: bytes) -> bool:
        return data[self.offset:self.offset + len(self.expected)] == self.expected

    def to_rpc(self) -> MemcmpOpts:
        return MemcmpOpts(offset=self.offset, bytes=base58.b58encode(self.expected).decode())


@dataclass(frozen=True)
class DataSizeFilter:
    """Match accounts whose data is exactly ``length`` bytes."""

    length: int

    def matches(self, data: bytes) -> bool:
        return len(data) == self.length

    def to_rpc(self) -> int:
        return self.length


AccountFilter = Union[MemcmpFilter, DataSizeFilter]


def matches_all(data: bytes, filters: Iterable[AccountFilter]) -> bool:
    return all(f.matches(data) for f in filters)


class AccountSource(Protocol):
    def get_account(self, address: Pubkey) -> Optional[RawAccount]:
        ...

    def get_program_accounts(
            self, program_id: Pubkey, filters: Sequence[AccountFilter] = ()
    ) -> List[KeyedAccount]:
        ...


def _raw(account) -> RawAccount:
    return RawAccount(owner=account.owner, data=bytes(account.data))


class RpcAccountSource:
    """Account source backed by a JSON-RPC ``Client``."""

    def __init__(self, client: Optional[Client] = None, commitment: Optional[Commitment] = None):
        self._client = client
        self.commitment = commitment or Context.get_commitment()

    @property
    def client(self) -> Client:
        if self._client is None:
            return Context.get_global_client()
        return self._client

    def get_account(self, address: Pubkey) -> Optional[RawAccount]:
        logger.debug("getAccountInfo %s", address)
        resp = self.client.get_account_info(address, commitment=self.commitment, encoding="base64")
        if resp.value is None:
            return None
        return _raw(resp.value)

    def get_multiple_accounts(self, addresses: Sequence[Pubkey]) -> List[Optional[RawAccount]]:
        logger.debug("getMultipleAccounts for %d keys", len(addresses))
        resp = self.client.get_multiple_accounts(list(addresses), commitment=self.commitment, encoding="base64")
        return [None if acct is None else _raw(acct) for acct in resp.value]

    def get_program_accounts(
            self, program_id: Pubkey, filters: Sequence[AccountFilter] = ()
    ) -> List[KeyedAccount]:
        logger.debug("getProgramAccounts %s with %d filters", program_id, len(filters))
        resp = self.client.get_program_accounts(
            program_id,
            commitment=self.commitment,
            encoding="base64",
            filters=[f.to_rpc() for f in filters] or None,
        )
        return [KeyedAccount(keyed.pubkey, _raw(keyed.account)) for keyed in resp.value]


class MemoryAccountSource:
    """Account source over an in-process map; evaluates filters the way a node does."""

    def __init__(self, accounts: Optional[Dict[Pubkey, RawAccount]] = None):
        self.accounts: Dict[Pubkey, RawAccount] = dict(accounts or {})

    def put(self, address: Pubkey, owner: Pubkey, data: bytes):
        self.accounts[address] = RawAccount(owner, bytes(data))

    def get_account(self, address: Pubkey) -> Optional[RawAccount]:
        return self.accounts.get(address)

    def get_multiple_accounts(self, addresses: Sequence[Pubkey]) -> List[Optional[RawAccount]]:
        return [self.accounts.get(a) for a in addresses]

    def get_program_accounts(
            self, program_id: Pubkey, filters: Sequence[AccountFilter] = ()
    ) -> List[KeyedAccount]:
        return [
            KeyedAccount(address, account)
            for address, account in self.accounts.items()
            if account.owner == program_id and matches_all(account.data, filters)
        ]


class Context:
    client: Optional[Client] = None
    parser: Optional["AccountParser"] = None
    commitment: Optional[Commitment] = None

    @staticmethod
    def init_globals(
            client: Optional[Client] = None,
            parser: Optional["AccountParser"] = None,
            commitment: Optional[Commitment] = None,
    ):
        Context.client = client
        Context.parser = parser
        if commitment is not None:
            Context.commitment = commitment

    @staticmethod
    def get_global_client() -> Client:
        if Context.client is None:
            url = os.environ.get(RPC_URL_ENV, DEFAULT_RPC_URL)
            logger.info("creating rpc client for %s", url)
            Context.client = Client(url, commitment=Context.get_commitment())
        return Context.client

    @staticmethod
    def set_global_client(client):
        Context.client = client

    @staticmethod
    def get_global_parser():
        return Context.parser

    @staticmethod
    def set_global_parser(parser):
        Context.parser = parser

    @staticmethod
    def get_commitment() -> Commitment:
        """An explicitly set commitment wins over the environment."""
        if Context.commitment is not None:
            return Context.commitment
        return Commitment(os.environ.get(COMMITMENT_ENV, Confirmed))


class AccountParser:
    _parsers: Dict[bytes, Callable[[bytes], object]]  # key: program_id

    def __init__(self):
        self._parsers = dict()

    def register_parser(self, program_id: Pubkey, parser: Callable[[bytes], object]):
        self._parsers[bytes(program_id)] = parser

    def parse(self, account: RawAccount):
        try:
            parser = self._parsers[bytes(account.owner)]
        except KeyError:
            raise ValueError(
                f"Failed to find parser corresponding to account owner. Owner={account.owner}",
                [str(Pubkey.from_bytes(p)) for p in self._parsers.keys()],
            ) from None
        return parser(account.data)


class AccountDetails:
    def __init__(self, public_key: Pubkey, account: Optional[RawAccount]):
        self.public_key = public_key
        self.account = account

    def __str__(self) -> str:
        return f"AccountDetails({self.public_key})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def data(self) -> Optional[bytes]:
        if self.account is None:
            return None
        return self.account.data

    @property
    def data_obj(self):
        if self.account is None:
            return None
        parser = Context.get_global_parser()
        return parser.parse(self.account)


def fetch_account_details(addr: Pubkey, source: Optional[AccountSource] = None) -> AccountDetails:
    if source is None:
        source = RpcAccountSource()
    return AccountDetails(addr, source.get_account(addr))


def explore(addr: Union[str, Pubkey], source: Optional[AccountSource] = None) -> AccountDetails:
    if isinstance(addr, str):
        addr = Pubkey.from_string(addr)
    elif not isinstance(addr, Pubkey):
        raise ValueError(f"expected an address, got {addr!r}")
    return fetch_account_details(addr, source)
