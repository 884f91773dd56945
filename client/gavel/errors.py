class GavelError(Exception):
    pass


class AccountNotFound(GavelError):
    """No account exists at the requested address."""

    def __init__(self, address):
        super().__init__(f"account {address} not found")
        self.address = address


class InvalidOwner(GavelError, ValueError):
    """The account exists but is owned by a different program."""

    def __init__(self, address, owner, expected):
        super().__init__(f"account {address} is owned by {owner}, expected {expected}")
        self.address = address
        self.owner = owner
        self.expected = expected


class InvalidAccountData(GavelError, ValueError):
    """The account's byte length does not fit the expected record kind."""


class DeserializationError(GavelError, ValueError):
    """The bytes do not decode under the schema."""


class SerializationError(GavelError, ValueError):
    """A value does not fit the physical type it is being encoded as."""


class InvalidSeed(GavelError, ValueError):
    pass


class AddressDerivationExhausted(GavelError):
    """No bump seed yields an off-curve address."""


class BlindedPriceError(GavelError):
    """A blinded price floor holds a commitment, not a readable price."""
