#!/usr/bin/env python3
"""Find the SOL pairs of one token in Raydium's pool list and record them."""

import argparse, logging, os, sys
from typing import List, Optional

from op1_fetch.acquire import DownloadError, acquire_document, discard
from pool_core.aggregate import AggregateMerger, FileAggregateRepository
from pool_core.errors import AmbiguousToken, PoolFetchError
from pool_core.models import WSOL_MINT, TokenRecord
from pool_core.pool_filter import filter_pools, validate_pool_document
from pool_core.progress import LoggingObserver
from pool_core.token_resolver import direct_token, resolve_token, select_token

logger = logging.getLogger(__name__)

RAYDIUM_POOLS_URL = "https://api.raydium.io/v2/sdk/liquidity/mainnet.json"
RAYDIUM_TOKENS_URL = "https://api.raydium.io/v2/sdk/token/raydium.mainnet.json"
OUTPUT_FILE = "trimmed_mainnet.json"


def build_parser() -> argparse.ArgumentParser:
    env = os.environ.get
    ap = argparse.ArgumentParser(description="Raydium pool fetcher")
    ap.add_argument("--file", help="path to an existing pool JSON file")
    ap.add_argument("--token-file", help="path to an existing token list JSON file")
    ap.add_argument("--mint", help="token mint address (requires --ticker)")
    ap.add_argument("--ticker", help="token ticker symbol")
    ap.add_argument("--output", default=env("RAYPOOL_OUTPUT", OUTPUT_FILE))
    ap.add_argument("--pools-url", default=env("RAYPOOL_POOLS_URL", RAYDIUM_POOLS_URL))
    ap.add_argument("--tokens-url", default=env("RAYPOOL_TOKENS_URL", RAYDIUM_TOKENS_URL))
    ap.add_argument("--tmp-dir", default=env("RAYPOOL_TMP_DIR", "tmp"))
    ap.add_argument("--quote-mint", default=env("RAYPOOL_QUOTE_MINT", WSOL_MINT))
    ap.add_argument("--skip-validation", action="store_true",
                    help="do not run the validation pass over the pool file")
    ap.add_argument("--log-level", default=env("RAYPOOL_LOG_LEVEL", "INFO"))
    return ap


def lookup_token(args, observer) -> TokenRecord:
    doc = acquire_document(args.token_file, args.tokens_url, args.tmp_dir, "raydium-tokens")
    try:
        with open(doc.path, 'rb') as f:
            matches = resolve_token(args.ticker, f, observer=observer)
    except BaseException:
        discard(doc)
        raise
    if doc.downloaded:
        logger.info("Tip: use --token-file=%s next time to skip downloading the token list",
                    doc.path)
    return select_token(args.ticker, matches)


def process(args, token: TokenRecord, observer=None) -> int:
    """Filter the pool document for ``token`` and merge the result into the output."""
    logger.info("Looking for %s pairs: base %s, quote %s",
                token.symbol, token.mint, args.quote_mint)
    doc = acquire_document(args.file, args.pools_url, args.tmp_dir, "raydium-pools")
    try:
        if not args.skip_validation:
            with open(doc.path, 'rb') as f:
                validate_pool_document(f)
        with open(doc.path, 'rb') as f:
            pools = filter_pools(token.mint, f, quote_mint=args.quote_mint, observer=observer)
    except BaseException:
        discard(doc)
        raise
    AggregateMerger(FileAggregateRepository(args.output)).merge(token, pools)
    if doc.downloaded:
        logger.info("Tip: use --file=%s next time to skip downloading", doc.path)
    return len(pools)


def print_candidates(err: AmbiguousToken) -> None:
    print(f"\nFound multiple tokens with symbol {err.symbol}. Please choose one:")
    for i, token in enumerate(err.candidates, 1):
        print(f"{i}) {token.name} (Mint: {token.mint})")
    print(f"\nRe-run the command with --mint=<mint_address> --ticker={err.symbol} "
          "to use a specific token")


def cli(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.mint and not args.ticker:
        ap.error("--ticker is required when using --mint")
    if not args.ticker:
        ap.error("--ticker is required")

    observer = LoggingObserver()
    try:
        if args.mint:
            token = direct_token(args.mint, args.ticker)
            logger.info("Using provided mint address directly: %s", args.mint)
        else:
            token = lookup_token(args, observer)
        found = process(args, token, observer)
    except AmbiguousToken as e:
        print_candidates(e)
        return 0
    except (PoolFetchError, DownloadError, OSError) as e:
        logger.error("Failed to fetch %s pools: %s", args.ticker, e)
        return 1
    logger.info("Found %d %s pairs, written to %s", found, token.symbol, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(cli())
