"""Resolve a ticker symbol against a streamed token directory."""
import logging
from typing import BinaryIO, List, Sequence

from pool_core.errors import AmbiguousToken, TokenNotFound
from pool_core.models import TokenRecord
from pool_core.progress import notify
from pool_core.sections import walk_sections

logger = logging.getLogger(__name__)

TOKEN_DOCUMENT = "tokens"
TOKEN_PROGRESS_EVERY = 100
DIRECT_MINT_DECIMALS = 9


def normalize_symbol(symbol: str) -> str:
    """Uppercase a symbol and drop one leading ``$``."""
    if symbol.startswith("$"):
        symbol = symbol[1:]
    return symbol.upper()


def resolve_token(symbol: str, stream: BinaryIO, observer=None,
                  every: int = TOKEN_PROGRESS_EVERY) -> List[TokenRecord]:
    """Return every token record whose symbol matches ``symbol``.

    Both sections are always read to the end, so a TokenNotFound really
    means the symbol is absent from the document.
    """
    wanted = normalize_symbol(symbol)
    matches = []
    counts = {}
    for section, token in walk_sections(stream, TOKEN_DOCUMENT, TokenRecord.from_json,
                                        observer=observer, every=every, counts=counts,
                                        cumulative=True):
        if normalize_symbol(token.symbol) == wanted:
            logger.debug("found %s token in %s: %s", wanted, section, token.mint)
            notify(observer, "record_matched", TOKEN_DOCUMENT, section, token)
            matches.append(token)
    logger.info("Processed %d tokens total", sum(counts.values()))
    if not matches:
        raise TokenNotFound(wanted)
    return matches


def select_token(symbol: str, matches: Sequence[TokenRecord]) -> TokenRecord:
    """Pick the single match, or raise AmbiguousToken listing the candidates."""
    if not matches:
        raise TokenNotFound(normalize_symbol(symbol))
    if len(matches) > 1:
        raise AmbiguousToken(normalize_symbol(symbol), matches)
    return matches[0]


def direct_token(mint: str, ticker: str, decimals: int = DIRECT_MINT_DECIMALS) -> TokenRecord:
    """Token record for a mint given explicitly instead of resolved."""
    return TokenRecord(
        symbol=normalize_symbol(ticker),
        name=f"{ticker} (Direct Mint)",
        mint=mint,
        decimals=decimals,
    )
