import os

from solders.pubkey import Pubkey

METAPLEX_AUCTION_PROGRAM = "auctxRXPeJoc4817jDhf4HbjnhEcr1cCXenosMhK5R8"
SPL_TOKEN_PROGRAM = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

AUCTION_PROGRAM_ID = Pubkey.from_string(os.environ.get("AUCTION", METAPLEX_AUCTION_PROGRAM))
SPL_TOKEN_PROGRAM_ID = Pubkey.from_string(os.environ.get("TOKEN_PROGRAM", SPL_TOKEN_PROGRAM))
