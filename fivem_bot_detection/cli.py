#!/usr/bin/env python3
"""
FiveM Bot Detection command line

Usage:
    fivem-bot-detection <cfxcode> [--verbose] [--output results.json] [--config config.yml]
"""

import argparse
import asyncio
import json
import re
import sys
from pathlib import Path
from typing import List, Optional

from fivem_bot_detection.clients.fivem_client import FiveMClient, ServerDataError
from fivem_bot_detection.clients.steam_client import SteamClient
from fivem_bot_detection.core.types import ReasonCategory
from fivem_bot_detection.scanner import BotScanner, ScanReport
from fivem_bot_detection.utils.config import ConfigurationManager, DetectionConfig, default_config
from fivem_bot_detection.utils.logger_setup import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fivem-bot-detection",
        description="Detect automated players on a FiveM server",
    )
    parser.add_argument('cfxcode', help='FiveM server CFX code to check')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    parser.add_argument('-o', '--output', type=str, default=None, help='Save results to file (JSON format)')
    parser.add_argument('-c', '--config', type=str, default=None, help='Use custom configuration file')
    return parser


def _category_title(category: ReasonCategory) -> str:
    return category.value.replace('_', ' ').capitalize()


def format_report(report: ScanReport, verbose: bool = False) -> str:
    """Human-readable scan summary"""
    server = report.server
    stats = report.statistics
    context = report.context
    lines: List[str] = []

    if context.context_factors:
        lines += ["", "SERVER CONTEXT ANALYSIS", "=" * 25]
        lines += [f"  • {factor}" for factor in context.context_factors]
        lines.append(f"  • Bot Detection Threshold: {round(context.expected_bot_threshold * 100)}%")
        if context.is_development_server:
            lines.append("  • Development Server Mode: More lenient detection")

    lines += [
        "", "SCAN RESULTS", "=" * 16,
        f"Server: {server.name}",
        f"Resources: {server.resource_count}",
        f"Players: {server.current_players}/{server.max_players}",
        f"Game Type: {server.game_type}",
        f"Map: {server.map_name}",
        f"Scan Duration: {server.duration_s} seconds",
        f"Analyzed Players: {stats.analyzed_players}",
        f"Steam Players: {stats.steam_players}",
        f"Valid Profiles: {stats.valid_profiles}",
        f"Potential Bots: {stats.potential_bots}",
        f"Errors: {stats.errors}",
    ]

    breakdown = [(c, n) for c, n in stats.reason_counts.items() if n > 0]
    if breakdown:
        lines += ["", "BOT DETECTION BREAKDOWN", "=" * 23]
        lines += [f"  {_category_title(c)}: {n}" for c, n in breakdown]
        borderline = stats.reason_counts.get(ReasonCategory.BORDERLINE_CASES, 0)
        if borderline:
            lines.append(f"\nBorderline Cases: {borderline} (require manual review)")

    if stats.potential_bots:
        total = stats.analyzed_players or stats.steam_players
        percentage = round(stats.potential_bots / total * 100) if total else 0
        lines += ["", "BOT DETECTION ALERT!", "=" * 20,
                  f"Bot Score: {stats.potential_bots}/{total} ({percentage}%)"]

        if verbose:
            lines.append("\nPotential Bots:")
            for index, verdict in enumerate(report.potential_bots, 1):
                lines.append(f"  {index}. {verdict.entity_name}")
                lines.append(f"     Bot Score: {verdict.final_score}")
                if verdict.identity is not None:
                    lines.append(f"     Steam Confidence: {verdict.identity.confidence}%")
                if verdict.bot_indicators:
                    lines.append(f"     Bot Indicators: {', '.join(verdict.bot_indicators)}")
                if verdict.identity is not None and verdict.identity.indicators:
                    lines.append(f"     Steam Indicators: {', '.join(verdict.identity.indicators)}")
                if verdict.human_indicators:
                    lines.append(f"     Human Indicators: {', '.join(verdict.human_indicators)}")
                passed = [re.sub(r'_validation$', '', layer.value)
                          for layer, ok in verdict.layers.passed().items() if ok]
                lines.append(f"     Validation Layers Passed: {', '.join(passed) or 'None'}")
                if verdict.warnings:
                    lines.append(f"     Warnings: {', '.join(verdict.warnings)}")
    else:
        lines.append("\nNo potential bots detected!")

    return "\n".join(lines)


def save_results(report: ScanReport, filename: str) -> Path:
    output_path = Path(filename).resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(report.to_dict(), f, indent=2)
    return output_path


def load_detection_config(config_file: Optional[str]) -> DetectionConfig:
    if config_file:
        return ConfigurationManager(config_file).load_config()
    return default_config()


async def run_scan(cfxcode: str, config: DetectionConfig) -> ScanReport:
    fivem_client = FiveMClient(config.fivem.api_url, config.fivem.request_timeout_s)
    steam_client = None
    if config.steam.api_key:
        steam_client = SteamClient(
            api_key=config.steam.api_key,
            api_url=config.steam.api_url,
            request_timeout_s=config.steam.request_timeout_s,
            max_retries=config.steam.max_retries,
            max_concurrent=config.steam.max_concurrent,
            rate_limit_delay_ms=config.steam.rate_limit_delay_ms,
        )
    else:
        logger.warning("steam_api_key_missing", detail="Steam profiles will not be checked")

    try:
        await fivem_client.start()
        if steam_client:
            await steam_client.start()
        return await BotScanner(fivem_client, steam_client).scan(cfxcode)
    finally:
        await fivem_client.stop()
        if steam_client:
            await steam_client.stop()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    try:
        config = load_detection_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config file: {e}", file=sys.stderr)
        return 1

    level = "DEBUG" if args.verbose else config.log_config.level
    setup_logging(level, config.log_config.format, config.log_config.output_file)

    try:
        report = asyncio.run(run_scan(args.cfxcode, config))
    except ServerDataError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(format_report(report, verbose=args.verbose))

    output_file = args.output or config.output.file
    if output_file:
        try:
            path = save_results(report, output_file)
            print(f"\nResults saved to: {path}")
        except OSError as e:
            print(f"Error saving results: {e}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
