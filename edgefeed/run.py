"""Entry point: ``python -m edgefeed.run``

Polls the configured providers, runs the feed pipeline and writes the
served news + calendar to ``EXPORT_PATH``.  Provider keys come from the
environment (``FMP_API_KEY``, ``EODHD_API_KEY``, ``FINNHUB_API_KEY``).

    python -m edgefeed.run --portfolio AAPL,BTC --once
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

from .common_types import PortfolioAsset
from .config import Config
from .export import build_payload, export_feed
from .pipeline import FeedPipeline
from .portfolio import CRYPTO_TICKERS

logger = logging.getLogger(__name__)


def parse_portfolio(raw: str) -> list[PortfolioAsset]:
    """``"AAPL, btc"`` → ``[PortfolioAsset("AAPL", "stock"), PortfolioAsset("BTC", "crypto")]``"""
    out: list[PortfolioAsset] = []
    for part in (raw or "").split(","):
        sym = part.strip().upper()
        if sym and all(a.symbol != sym for a in out):
            out.append(PortfolioAsset(sym, "crypto" if sym in CRYPTO_TICKERS else "stock"))
    return out


def poll_once(pipeline: FeedPipeline, args: argparse.Namespace) -> None:
    cfg = pipeline.cfg
    portfolio = parse_portfolio(args.portfolio)
    feed = pipeline.news_feed(
        category=args.category,
        time_range=args.time_range,
        portfolio=portfolio,
        bust_cache=args.bust_cache,
    )
    cal = pipeline.calendar()
    payload = build_payload(feed, cal, {
        "sources": cfg.active_sources,
        "portfolio": [a.symbol for a in portfolio],
        "category": args.category,
        "time_range": args.time_range,
    })
    export_feed(cfg.export_path, payload)
    logger.info(
        "Exported %d news items (%s) and %d calendar events%s to %s",
        len(feed.items),
        "stale cache" if feed.stale else ("cache" if feed.from_cache else "fresh"),
        len(cal.events),
        " (static fallback)" if cal.used_fallback else "",
        cfg.export_path,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="edgefeed", description="Scored market news + calendar feed")
    p.add_argument("--portfolio", default="", help="Comma-separated symbols, e.g. AAPL,BTC")
    p.add_argument("--category", default="all")
    p.add_argument("--time-range", default="all", choices=("today", "24h", "7d", "all"))
    p.add_argument("--bust-cache", action="store_true", help="Skip the cache on the first poll")
    p.add_argument("--once", action="store_true", help="Poll once and exit")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    cfg = Config()
    logger.info("Active sources: %s", cfg.active_sources)

    pipeline = FeedPipeline(cfg)
    try:
        if args.once:
            poll_once(pipeline, args)
            return 0
        logger.info("edgefeed loop started (interval=%.1fs).", cfg.poll_interval_s)
        while True:
            t0 = time.time()
            try:
                poll_once(pipeline, args)
            except Exception:
                logger.exception("Poll cycle error – will retry next tick.")
            args.bust_cache = False
            time.sleep(max(0.2, cfg.poll_interval_s - (time.time() - t0)))
    except KeyboardInterrupt:
        logger.info("edgefeed loop stopped.")
        return 0
    finally:
        pipeline.close()


if __name__ == "__main__":
    sys.exit(main())
