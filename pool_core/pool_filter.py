"""Stream a Raydium liquidity document and keep the token/quote pairs."""
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional

from pool_core.cursor import JSONCursor
from pool_core.errors import MalformedDocument
from pool_core.models import WSOL_MINT, PoolRecord
from pool_core.progress import notify
from pool_core.sections import OFFICIAL, UNOFFICIAL, walk_sections

logger = logging.getLogger(__name__)

POOL_DOCUMENT = "pools"
POOL_PROGRESS_EVERY = 100000


def is_pair_match(pool: PoolRecord, mint: str, quote_mint: str = WSOL_MINT) -> bool:
    """True when the pool pairs ``mint`` with ``quote_mint`` in either order."""
    return ((pool.base_mint == mint and pool.quote_mint == quote_mint) or
            (pool.quote_mint == mint and pool.base_mint == quote_mint))


@dataclass
class PoolScanSummary:
    official: int = 0
    unofficial: int = 0
    pools: List[PoolRecord] = field(default_factory=list)

    @property
    def matches(self) -> int:
        return len(self.pools)


def scan_pools(mint: str, stream: BinaryIO, quote_mint: str = WSOL_MINT,
               observer=None, every: int = POOL_PROGRESS_EVERY) -> PoolScanSummary:
    """Filter pools while streaming and report the section counts."""
    counts = {}
    summary = PoolScanSummary()
    for section, pool in walk_sections(stream, POOL_DOCUMENT, PoolRecord.from_json,
                                       observer=observer, every=every, counts=counts):
        if is_pair_match(pool, mint, quote_mint):
            notify(observer, "record_matched", POOL_DOCUMENT, section, pool)
            summary.pools.append(pool)
    summary.official = counts.get(OFFICIAL, 0)
    summary.unofficial = counts.get(UNOFFICIAL, 0)
    logger.info("Pool summary: %d official, %d unofficial, %d matching pairs",
                summary.official, summary.unofficial, summary.matches)
    return summary


def filter_pools(mint: str, stream: BinaryIO, quote_mint: str = WSOL_MINT,
                 observer=None, every: int = POOL_PROGRESS_EVERY) -> List[PoolRecord]:
    """Return the pools pairing ``mint`` with ``quote_mint``, in document order.

    Official pools come before unofficial ones. An empty list is a valid
    result; structural problems raise MalformedDocument.
    """
    return scan_pools(mint, stream, quote_mint, observer, every).pools


def validate_pool_document(stream: BinaryIO) -> int:
    """Check a pool document end to end and return its official pool count.

    The document needs a non-empty ``name`` and a non-empty ``official``
    array, and every pool in both sections must decode.
    """
    names: List[Optional[str]] = []

    def read_name(cursor: JSONCursor):
        value = cursor.read_value()
        if not isinstance(value, str):
            raise MalformedDocument(f"{POOL_DOCUMENT}.name: expected string, got {value!r}",
                                    cursor.position)
        names.append(value)

    counts = {}
    for _ in walk_sections(stream, POOL_DOCUMENT, PoolRecord.from_json, every=0,
                           fields={"name": read_name}, counts=counts):
        pass
    if not names or not names[-1]:
        raise MalformedDocument(f"{POOL_DOCUMENT}: missing name field")
    if counts.get(OFFICIAL, 0) == 0:
        raise MalformedDocument(f"{POOL_DOCUMENT}: empty {OFFICIAL} pools array")
    logger.info("JSON validation successful: found %d pools", counts[OFFICIAL])
    return counts[OFFICIAL]
