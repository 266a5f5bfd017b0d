#!/usr/bin/env python3
from fastapi import FastAPI, UploadFile, File, HTTPException
from fastapi.responses import JSONResponse, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
import logging, tempfile, threading, os
from pathlib import Path
from typing import Optional
from pool_core.aggregate import AggregateMerger, FileAggregateRepository
from pool_core.errors import AmbiguousToken, MalformedDocument, TokenNotFound
from pool_core.models import WSOL_MINT
from pool_core.pool_filter import filter_pools
from pool_core.progress import FanoutObserver, LoggingObserver, MetricsObserver
from pool_core.token_resolver import direct_token, normalize_symbol, resolve_token, select_token

app = FastAPI(title="Raypool OP2")
logger = logging.getLogger(__name__)

request_counter = Counter("pool_requests_total", "Total document uploads", ["endpoint"])
process_duration = Histogram("pool_process_seconds", "Time spent processing")

observer = FanoutObserver(LoggingObserver(), MetricsObserver())
aggregate_lock = threading.Lock()
CHUNK_SIZE = 8*1024*1024  # 8 MB


def aggregate_path() -> Path:
    return Path(os.environ.get("RAYPOOL_OUTPUT", "trimmed_mainnet.json"))


async def spool(upload: UploadFile) -> Path:
    """Copy an upload to a temp file so it can be streamed from disk."""
    with tempfile.NamedTemporaryFile(suffix=".json", delete=False) as tmp:
        while True:
            chunk = await upload.read(CHUNK_SIZE)
            if not chunk:
                break
            tmp.write(chunk)
        return Path(tmp.name)


def malformed(e: MalformedDocument) -> HTTPException:
    return HTTPException(status_code=422, detail=str(e))


@app.get("/health", tags=["ops"])
def health():
    return {"status": "healthy"}


@app.get("/metrics", tags=["ops"])
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.post("/tokens/resolve", tags=["process"])
async def resolve(symbol: str, file: UploadFile = File(...)):
    request_counter.labels(endpoint="resolve").inc()
    tmp_path = await spool(file)
    try:
        with process_duration.time(), open(tmp_path, 'rb') as f:
            matches = resolve_token(symbol, f, observer=observer)
    except TokenNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MalformedDocument as e:
        raise malformed(e)
    finally:
        tmp_path.unlink()
    return {"symbol": normalize_symbol(symbol), "matches": [t.to_json() for t in matches]}


@app.post("/pools/filter", tags=["process"])
async def filter_endpoint(mint: str, quote_mint: str = WSOL_MINT, file: UploadFile = File(...)):
    request_counter.labels(endpoint="filter").inc()
    tmp_path = await spool(file)
    try:
        with process_duration.time(), open(tmp_path, 'rb') as f:
            pools = filter_pools(mint, f, quote_mint=quote_mint, observer=observer)
    except MalformedDocument as e:
        raise malformed(e)
    finally:
        tmp_path.unlink()
    return {"mint": mint, "quote_mint": quote_mint, "pools": [p.to_json() for p in pools]}


@app.post("/pools/collect", tags=["process"])
async def collect(
    symbol: str,
    mint: Optional[str] = None,
    pools: UploadFile = File(...),
    tokens: Optional[UploadFile] = File(None),
):
    """Resolve, filter and merge into the aggregate file in one call."""
    request_counter.labels(endpoint="collect").inc()
    if mint is None and tokens is None:
        raise HTTPException(status_code=400, detail="either mint or a tokens file is required")
    pools_path = tokens_path = None
    try:
        pools_path = await spool(pools)
        if mint is None:
            tokens_path = await spool(tokens)
        with process_duration.time():
            if mint is not None:
                token = direct_token(mint, symbol)
            else:
                with open(tokens_path, 'rb') as f:
                    token = select_token(symbol, resolve_token(symbol, f, observer=observer))
            with open(pools_path, 'rb') as f:
                found = filter_pools(token.mint, f, observer=observer)
            with aggregate_lock:
                aggregate = AggregateMerger(FileAggregateRepository(aggregate_path())).merge(token, found)
    except AmbiguousToken as e:
        return JSONResponse(status_code=409, content={
            "detail": str(e), "candidates": [t.to_json() for t in e.candidates]})
    except TokenNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except MalformedDocument as e:
        raise malformed(e)
    finally:
        for path in (pools_path, tokens_path):
            if path is not None:
                path.unlink()
    return {"token": token.to_json(), "pools": len(found), "tokens": aggregate.symbols()}


@app.get("/aggregate", tags=["process"])
def read_aggregate():
    try:
        loaded = FileAggregateRepository(aggregate_path()).load()
    except MalformedDocument as e:
        raise HTTPException(status_code=500, detail=str(e))
    if loaded is None:
        return {"tokens": []}
    return loaded.aggregate.to_json()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
