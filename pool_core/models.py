"""Record types for pool and token documents and their JSON mapping."""
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Tuple

from pool_core.errors import MalformedDocument

WSOL_MINT = "So11111111111111111111111111111111111111112"


def _key(name: str, kind: type = str):
    return field(default=kind(), metadata={"key": name, "kind": kind})


def _decode(cls, raw: Any, context: str):
    """Build ``cls`` from a decoded JSON object.

    Unknown keys are ignored, missing or null keys keep their zero value and
    a value of the wrong type is rejected.
    """
    if not isinstance(raw, dict):
        raise MalformedDocument(f"{context}: expected object, got {type(raw).__name__}")
    kwargs = {}
    for f in fields(cls):
        key, kind = f.metadata["key"], f.metadata["kind"]
        value = raw.get(key)
        if value is None:
            continue
        if kind is int:
            # bool is an int subclass; JSON true/false is not a number
            if isinstance(value, bool) or not isinstance(value, int):
                raise MalformedDocument(f"{context}.{key}: expected integer, got {value!r}")
        elif not isinstance(value, str):
            raise MalformedDocument(f"{context}.{key}: expected string, got {value!r}")
        kwargs[f.name] = value
    return cls(**kwargs)


def _encode(record) -> Dict[str, Any]:
    return {f.metadata["key"]: getattr(record, f.name) for f in fields(record)}


@dataclass(frozen=True)
class PoolRecord:
    """A liquidity pool pairing two mints."""

    id: str = _key("id")
    base_mint: str = _key("baseMint")
    quote_mint: str = _key("quoteMint")
    lp_mint: str = _key("lpMint")
    program_id: str = _key("programId")
    authority: str = _key("authority")
    open_orders: str = _key("openOrders")
    target_orders: str = _key("targetOrders")
    base_vault: str = _key("baseVault")
    quote_vault: str = _key("quoteVault")
    version: int = _key("version", int)
    base_decimals: int = _key("baseDecimals", int)
    quote_decimals: int = _key("quoteDecimals", int)
    lp_decimals: int = _key("lpDecimals", int)
    market_version: int = _key("marketVersion", int)
    market_program_id: str = _key("marketProgramId")
    market_id: str = _key("marketId")

    @classmethod
    def from_json(cls, raw: Any, context: str = "pool") -> "PoolRecord":
        return _decode(cls, raw, context)

    def to_json(self) -> Dict[str, Any]:
        return _encode(self)


@dataclass(frozen=True)
class TokenRecord:
    symbol: str = _key("symbol")
    name: str = _key("name")
    mint: str = _key("mint")
    decimals: int = _key("decimals", int)

    @classmethod
    def from_json(cls, raw: Any, context: str = "token") -> "TokenRecord":
        return _decode(cls, raw, context)

    def to_json(self) -> Dict[str, Any]:
        return _encode(self)


@dataclass(frozen=True)
class TokenPoolEntry:
    """One token together with the pools found for it."""

    token: TokenRecord
    pools: Tuple[PoolRecord, ...] = ()

    @classmethod
    def from_json(cls, raw: Any, context: str = "entry") -> "TokenPoolEntry":
        if not isinstance(raw, dict):
            raise MalformedDocument(f"{context}: expected object")
        if not isinstance(raw.get("token"), dict):
            raise MalformedDocument(f"{context}.token: expected object")
        pools = raw.get("pools")
        if pools is None:
            pools = []
        if not isinstance(pools, list):
            raise MalformedDocument(f"{context}.pools: expected array")
        return cls(
            token=TokenRecord.from_json(raw["token"], f"{context}.token"),
            pools=tuple(
                PoolRecord.from_json(p, f"{context}.pools[{i}]") for i, p in enumerate(pools)
            ),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "token": self.token.to_json(),
            "pools": [p.to_json() for p in self.pools],
        }


@dataclass
class Aggregate:
    """Ordered per-token pool results; the persisted unit of state."""

    entries: List[TokenPoolEntry] = field(default_factory=list)

    @classmethod
    def from_json(cls, raw: Any) -> "Aggregate":
        if not isinstance(raw, dict) or not isinstance(raw.get("tokens"), list):
            raise MalformedDocument("aggregate: expected object with a tokens array")
        return cls([
            TokenPoolEntry.from_json(e, f"tokens[{i}]") for i, e in enumerate(raw["tokens"])
        ])

    def to_json(self) -> Dict[str, Any]:
        return {"tokens": [e.to_json() for e in self.entries]}

    def symbols(self) -> List[str]:
        return [e.token.symbol for e in self.entries]

    def find(self, symbol: str):
        for entry in self.entries:
            if entry.token.symbol == symbol:
                return entry
        return None
