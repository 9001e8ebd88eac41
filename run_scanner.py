#!/usr/bin/env python3
"""
Multi-Timeframe RSI Confluence Scanner - Runner

Fetches candles for the tracked pairs, runs the RSI pipeline and prints one
verdict per pair, or replays RSI extremes for a single pair.

PIPELINE (per pair)
    1. Fetch closes for every configured timeframe (1m ... 1w)
    2. RSI readings for periods 5, 9, 14, 50, 75, 100, 200
    3. Trend / stretch / flip snapshot per timeframe
    4. Swing and scalp bias, market regime, 4H divergence
    5. Signal checklists and confidence -> verdict

EXECUTION
    python run_scanner.py scan
    python run_scanner.py scan --symbols BTCUSDT ETHUSDT --json
    python run_scanner.py backtest --symbol SOLUSDT --timeframe 1h
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from typing import List, Optional

from rsi_confluence.backtest_engine import HORIZON_CANDLES, BacktestResult, run_backtest
from rsi_confluence.config import DEFAULT_CONFIG, SYMBOL_NAMES, TOP_PAIRS, ScannerConfig
from rsi_confluence.confluence import scan_extremes
from rsi_confluence.data_collector import BinanceClient, DataFeedUnavailable, fetch_fear_greed
from rsi_confluence.market_context import format_funding_rate
from rsi_confluence.signal_engine import PairAnalysis, analyze_pair
from rsi_confluence.technical_indicators import classify_rsi_zone


VERSION: str = "1.0.0"
BACKTEST_CANDLES: int = 500

logger = logging.getLogger(__name__)


# =============================================================================
# DISPLAY COMPONENTS
# =============================================================================

def print_section_header(title: str, char: str = "═") -> None:
    width = 79
    print()
    print(char * width)
    print(f"  {title}")
    print(char * width)
    print()


def print_subsection(title: str) -> None:
    print()
    print(f"  {'─' * 75}")
    print(f"  {title}")
    print(f"  {'─' * 75}")


def format_rsi(value: Optional[float]) -> str:
    return "  -  " if value is None else f"{value:5.1f}"


def print_pair(analysis: PairAnalysis, config: ScannerConfig) -> None:
    """Print the RSI grid and verdict for one pair."""
    verdict = analysis.verdict
    name = SYMBOL_NAMES.get(analysis.symbol, analysis.symbol)
    price = f"{analysis.price:,.4f}" if analysis.price is not None else "N/A"
    print_subsection(f"{analysis.symbol} ({name})  price {price}")

    header = "  TF    " + " ".join(f"RSI{p:<4}" for p in config.periods)
    print(header)
    for label in config.timeframe_labels:
        row = analysis.readings.get(label, {})
        cells = " ".join(f"{format_rsi(row.get(p)):<7}" for p in config.periods)
        zone = classify_rsi_zone(row.get(14))
        print(f"  {label:<5} {cells} {zone.value if zone else ''}")

    c = analysis.confluence
    print(f"\n  Confluence:  {c.score:+d} ({c.signal.value}) "
          f"[{c.oversold_count} oversold / {c.overbought_count} overbought of {c.total_timeframes}]")
    print(f"  Swing bias:  {verdict.swing_bias.label}")
    print(f"  Scalp bias:  {verdict.scalp_bias.label}")
    print(f"  Regime:      {verdict.regime.value}")
    for label, result in analysis.divergences.items():
        if result.found:
            print(f"  Divergence:  {label} {result.divergence_type.value} - {result.description}")

    signal = verdict.signal.value if verdict.signal else "-"
    print(f"\n  Verdict:     {verdict.status.value.upper()}  {signal}  ({verdict.confidence}%)")
    for reason in verdict.reasons:
        print(f"    {reason}")


def print_backtest(result: BacktestResult) -> None:
    print_section_header(
        f"BACKTEST: {result.symbol} {result.timeframe} RSI{result.rsi_period} "
        f"(<{result.oversold_threshold:.0f} / >{result.overbought_threshold:.0f})"
    )
    print(f"  Candles: {result.candles}    Signals: {result.signal_count}")

    for label, stats in (("OVERSOLD  (expect up)", result.oversold_stats),
                         ("OVERBOUGHT (expect down)", result.overbought_stats)):
        print_subsection(f"{label}: {stats.count} signals")
        print(f"    {'Horizon':<10}{'Win rate':>10}{'Avg return':>14}")
        print(f"    {'1h':<10}{stats.win_rate_1h:>9.1f}%{stats.avg_return_1h:>13.2f}%")
        print(f"    {'4h':<10}{stats.win_rate_4h:>9.1f}%{stats.avg_return_4h:>13.2f}%")
        print(f"    {'24h':<10}{stats.win_rate_24h:>9.1f}%{stats.avg_return_24h:>13.2f}%")

    recent = result.recent_signals(10)
    if recent:
        print_subsection("RECENT SIGNALS")
        for sig in recent:
            when = (datetime.fromtimestamp(sig.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
                    if sig.timestamp else str(sig.index))
            r24 = f"{sig.return_24h:+.2f}%" if sig.return_24h is not None else "N/A"
            print(f"    {when}  {sig.signal_type.value:<10} RSI {sig.rsi:5.1f}  "
                  f"price {sig.price:,.4f}  24h {r24}")


# =============================================================================
# COMMANDS
# =============================================================================

def run_scan(
    client: BinanceClient,
    symbols: List[str],
    config: ScannerConfig,
    as_json: bool = False
) -> int:
    """
    Analyse every pair and print verdicts.

    Returns
    -------
    int
        Exit code: 1 only when no pair could be analysed
    """
    analyses: List[PairAnalysis] = []
    for symbol in symbols:
        try:
            closes = client.fetch_closes_by_timeframe(symbol, config.timeframes)
        except DataFeedUnavailable as e:
            logger.error(f"Skipping {symbol}: {e}")
            continue
        analysis = analyze_pair(symbol, closes, config)
        analyses.append(analysis)
        logger.info(
            f"{symbol}: {analysis.verdict.status.value} "
            f"{analysis.verdict.signal.value if analysis.verdict.signal else ''}"
        )

    if not analyses:
        logger.error("No pair could be analysed")
        return 1

    funding = client.fetch_funding_rates()
    fear_greed = fetch_fear_greed(client.session, client.timeout)

    if as_json:
        payload = {
            "pairs": [
                {
                    **a.verdict.to_dict(),
                    "price": a.price,
                    "confluence_score": a.confluence.score,
                    "funding_rate": funding[a.symbol].funding_rate if a.symbol in funding else None,
                }
                for a in analyses
            ],
            "fear_greed": fear_greed.value if fear_greed else None,
        }
        print(json.dumps(payload, indent=2))
        return 0

    print_section_header("MARKET CONTEXT")
    if fear_greed:
        print(f"  Fear & Greed:  {fear_greed.value} ({fear_greed.zone.value})")
    else:
        print("  Fear & Greed:  unavailable")

    print_section_header("PAIR ANALYSIS")
    for analysis in analyses:
        print_pair(analysis, config)
        rate = funding.get(analysis.symbol)
        if rate:
            print(f"  Funding:     {format_funding_rate(rate.funding_rate)} ({rate.level.value})")

    print_section_header("EXTREMES")
    for analysis in analyses:
        result = scan_extremes(
            analysis.symbol, analysis.readings, analysis.price,
            config.confluence_timeframes, config.thresholds,
        )
        if not result.extremes:
            continue
        cells = ", ".join(f"{e.timeframe} RSI{e.period} {e.value:.1f}" for e in result.extremes)
        print(f"  {result.symbol:<10} {cells}")

    active = [a for a in analyses if a.verdict.is_active]
    print_section_header(f"ACTIVE SIGNALS: {len(active)}")
    for a in sorted(active, key=lambda x: x.verdict.confidence, reverse=True):
        print(f"  {a.symbol:<10} {a.verdict.signal.value:<12} {a.verdict.confidence:>3}%")

    return 0


def run_backtest_command(
    client: BinanceClient,
    symbol: str,
    timeframe: str,
    period: int
) -> int:
    try:
        klines = client.fetch_klines(symbol, timeframe, BACKTEST_CANDLES)
    except DataFeedUnavailable as e:
        logger.error(f"Backtest data unavailable for {symbol}: {e}")
        return 1

    result = run_backtest(
        symbol,
        timeframe,
        klines["close"].to_numpy(dtype=float),
        rsi_period=period,
        timestamps=klines["open_time"].to_numpy(),
    )
    if result is None:
        logger.error(f"Not enough {timeframe} history for {symbol}")
        return 1

    logger.info(f"Backtest {symbol} {timeframe}: {result.signal_count} signals")
    print_backtest(result)
    return 0


# =============================================================================
# ENTRY POINT
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the scanner.

    Returns
    -------
    int
        Exit code (0 for success, 1 for failure)
    """
    start_time = time.time()

    parser = argparse.ArgumentParser(
        description="Multi-Timeframe RSI Confluence Scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_scanner.py scan                              # Top 10 pairs
  python run_scanner.py scan --symbols BTCUSDT ETHUSDT    # Selected pairs
  python run_scanner.py backtest --symbol BTCUSDT --timeframe 4h
        """
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Scan pairs and print verdicts")
    scan.add_argument(
        "--symbols", "-s",
        nargs="+",
        default=list(TOP_PAIRS),
        help="Pairs to scan (default: top 10 USDT pairs)"
    )
    scan.add_argument("--json", action="store_true", help="Print verdicts as JSON")

    backtest = subparsers.add_parser("backtest", help="Backtest RSI extremes on one pair")
    backtest.add_argument("--symbol", "-s", default="BTCUSDT", help="Pair (default: BTCUSDT)")
    backtest.add_argument(
        "--timeframe", "-t",
        choices=sorted(HORIZON_CANDLES),
        default="1h",
        help="Candle timeframe (default: 1h)"
    )
    backtest.add_argument("--period", "-p", type=int, default=14, help="RSI period (default: 14)")

    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="  %(asctime)s │ %(levelname)s │ %(message)s",
        datefmt="%H:%M:%S"
    )

    config = DEFAULT_CONFIG.validate()
    client = BinanceClient()

    if not getattr(args, "json", False):
        print(f"  Execution Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"  Version:           {VERSION}")

    if args.command == "scan":
        symbols = [s.upper() for s in args.symbols]
        code = run_scan(client, symbols, config, as_json=args.json)
    else:
        code = run_backtest_command(client, args.symbol.upper(), args.timeframe, args.period)

    logger.info(f"Finished in {time.time() - start_time:.1f}s")
    return code


if __name__ == "__main__":
    sys.exit(main())
