from hashlib import sha256
from typing import Sequence, Tuple

from solders.pubkey import Pubkey

from gavel.errors import AddressDerivationExhausted, InvalidSeed

MAX_SEED_LEN = 32
# the bump byte counts as one of these
MAX_SEEDS = 16
PDA_MARKER = b"ProgramDerivedAddress"


class OnCurveAddress(InvalidSeed):
    pass


def _check_seeds(seeds: Sequence[bytes]):
    if len(seeds) >= MAX_SEEDS:
        raise InvalidSeed(f"at most {MAX_SEEDS - 1} seeds are allowed, got {len(seeds)}")
    for i, seed in enumerate(seeds):
        if not isinstance(seed, (bytes, bytearray)):
            raise InvalidSeed(f"seed {i} must be bytes, got {type(seed).__name__}")
        if len(seed) > MAX_SEED_LEN:
            raise InvalidSeed(f"seed {i} is {len(seed)} bytes, max is {MAX_SEED_LEN}")


def is_on_curve(address: Pubkey) -> bool:
    return address.is_on_curve()


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
    """Hash ``seeds`` under ``program_id`` without searching for a bump.

    Raises ``OnCurveAddress`` when the result lands on the ed25519 curve, since
    such an address could have a private key.
    """
    if len(seeds) > MAX_SEEDS:
        raise InvalidSeed(f"at most {MAX_SEEDS} seeds are allowed, got {len(seeds)}")
    h = sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise InvalidSeed(f"seed of {len(seed)} bytes exceeds {MAX_SEED_LEN}")
        h.update(bytes(seed))
    h.update(bytes(program_id))
    h.update(PDA_MARKER)
    address = Pubkey.from_bytes(h.digest())
    if is_on_curve(address):
        raise OnCurveAddress(f"{address} is on the ed25519 curve")
    return address


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Derive the program address for ``seeds``, trying bumps from 255 down to 0.

    The bump byte is hashed as a trailing seed, ahead of the program id, which
    is how the runtime verifies signer seeds. Returns ``(address, bump)`` for the
    first bump whose hash is off the curve.
    """
    _check_seeds(seeds)
    for bump in range(255, -1, -1):
        try:
            return create_program_address([*seeds, bytes([bump])], program_id), bump
        except OnCurveAddress:
            continue
    raise AddressDerivationExhausted(f"no viable bump for {len(seeds)} seeds under {program_id}")
