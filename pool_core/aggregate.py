"""Persisted per-token pool aggregate and its upsert."""
import enum, json, logging, os, pathlib, tempfile
from typing import NamedTuple, Optional, Sequence

from pool_core.errors import MalformedDocument
from pool_core.models import Aggregate, PoolRecord, TokenPoolEntry, TokenRecord

logger = logging.getLogger(__name__)


class AggregateShape(enum.Enum):
    CURRENT = "current"
    LEGACY = "legacy"


class LoadedAggregate(NamedTuple):
    shape: AggregateShape
    aggregate: Aggregate


def load_aggregate(data: bytes) -> LoadedAggregate:
    """Parse stored bytes as the current shape, else as a legacy single entry."""
    try:
        raw = json.loads(data)
    except ValueError as e:
        raise MalformedDocument(f"aggregate: invalid JSON: {e}") from e
    try:
        return LoadedAggregate(AggregateShape.CURRENT, Aggregate.from_json(raw))
    except MalformedDocument as current_error:
        try:
            entry = TokenPoolEntry.from_json(raw, "legacy entry")
        except MalformedDocument:
            raise current_error from None
    logger.warning("Promoting legacy single-token file for %s to the tokens list format",
                   entry.token.symbol)
    return LoadedAggregate(AggregateShape.LEGACY, Aggregate([entry]))


def dump_aggregate(aggregate: Aggregate) -> bytes:
    """Indented, field-ordered JSON so consecutive runs diff cleanly."""
    text = json.dumps(aggregate.to_json(), indent=2, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def upsert(aggregate: Aggregate, token: TokenRecord, pools: Sequence[PoolRecord]) -> bool:
    """Replace the entry with the same symbol in place, or append one.

    Returns True when an existing entry was replaced.
    """
    entry = TokenPoolEntry(token, tuple(pools))
    for i, existing in enumerate(aggregate.entries):
        if existing.token.symbol == token.symbol:
            aggregate.entries[i] = entry
            return True
    aggregate.entries.append(entry)
    return False


def merge_aggregate(existing: Optional[bytes], token: TokenRecord,
                    pools: Sequence[PoolRecord]) -> bytes:
    aggregate = Aggregate() if existing is None else load_aggregate(existing).aggregate
    upsert(aggregate, token, pools)
    return dump_aggregate(aggregate)


class FileAggregateRepository:
    """Aggregate stored in one JSON file, rewritten whole on every save.

    Saves go through a temporary file in the same directory followed by an
    atomic rename. One writer at a time; concurrent runs are not supported.
    """

    def __init__(self, path):
        self.path = pathlib.Path(path)

    def load(self) -> Optional[LoadedAggregate]:
        if not self.path.exists():
            return None
        return load_aggregate(self.path.read_bytes())

    def save(self, aggregate: Aggregate) -> None:
        data = dump_aggregate(aggregate)
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=directory, prefix=f".{self.path.name}.",
                                         suffix=".tmp", delete=False) as tmp:
            tmp_path = pathlib.Path(tmp.name)
            try:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            except BaseException:
                tmp.close()
                tmp_path.unlink()
                raise
        try:
            os.replace(tmp_path, self.path)
        except BaseException:
            tmp_path.unlink()
            raise


class AggregateMerger:
    def __init__(self, repository):
        self.repository = repository

    def merge(self, token: TokenRecord, pools: Sequence[PoolRecord]) -> Aggregate:
        loaded = self.repository.load()
        aggregate = Aggregate() if loaded is None else loaded.aggregate
        if upsert(aggregate, token, pools):
            logger.info("Updating existing entry for %s", token.symbol)
        self.repository.save(aggregate)
        logger.info("Wrote %d pools for %s; aggregate now holds %d tokens",
                    len(pools), token.symbol, len(aggregate.entries))
        return aggregate
