#!/usr/bin/env python3
"""
Shadow Scan command-line front end.

Examples:
  shadow-scan analyze --text "Congrats! You won a gift card, claim it here: ..."
  shadow-scan analyze --image screenshot.png --deep --export report.txt
  shadow-scan analyze --email-file suspicious.eml --speak
  shadow-scan analyze --youtube "https://youtu.be/dQw4w9WgXcQ"
  shadow-scan history
  shadow-scan history --show 1700000000000
  shadow-scan rate 1700000000000 up
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from intel.email_intake import EmailFields, format_email_payload, format_video_url_payload, parse_raw_email
from logging_config import setup_logging
from pipeline.errors import ShadowScanError, user_message
from pipeline.report import categorize_scam_type, render_report
from pipeline.schemas import AnalysisResult
from scan_settings import ScanSettings
from shadow_scan import ShadowScan

logger = logging.getLogger("shadow_scan.cli")

SPEECH_POLL_INTERVAL_S = 0.1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shadow-scan",
        description="Scan messages, emails, screenshots, audio and video for scams",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show INFO logs on the console"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze content for scams")
    analyze.add_argument("--text", help="Message text to analyze")
    analyze.add_argument("--email-file", help="File holding a raw email (headers, blank line, body)")
    analyze.add_argument("--youtube", metavar="URL", help="Video link to analyze")
    analyze.add_argument("--image", help="Screenshot or image file")
    analyze.add_argument("--audio", help="Voice note or call recording")
    analyze.add_argument("--video", help="Video clip")
    analyze.add_argument("--deep", action="store_true", help="Use extended reasoning")
    analyze.add_argument("--speak", action="store_true", help="Read the verdict aloud")
    analyze.add_argument("--export", metavar="PATH", help="Write a plain-text report to PATH")

    history = sub.add_parser("history", help="List or manage past analyses")
    history.add_argument("--show", metavar="ID", help="Print the full report of one entry")
    history.add_argument("--clear", action="store_true", help="Delete the whole history")

    rate = sub.add_parser("rate", help="Give thumbs up or down to a past analysis")
    rate.add_argument("id", help="History entry id")
    rate.add_argument("rating", choices=["up", "down"])

    return parser


def _read_bytes(path: Optional[str]) -> Optional[bytes]:
    return Path(path).read_bytes() if path else None


def compose_text(args) -> Optional[str]:
    """Merge the free text, email and video-link inputs into one analysis text."""
    parts: List[str] = []
    if args.text and args.text.strip():
        parts.append(args.text.strip())
    if args.email_file:
        raw = Path(args.email_file).read_text(encoding="utf-8", errors="replace")
        fields = parse_raw_email(raw) or EmailFields(body=raw.strip())
        parts.append(format_email_payload(fields))
    if args.youtube is not None:
        parts.append(format_video_url_payload(args.youtube))
    return "\n\n".join(parts) or None


def print_result(result: AnalysisResult):
    print(f"\n{result.verdict}  [{result.risk_level.value}]")
    print(f"Scam probability: {result.scam_likelihood:g}%   Vibe score: {result.vibe_score:g}/100")
    print(f"Type: {result.scam_type}")
    print(f"Intent: {result.sender_intent}")
    print(f"\n{result.summary}")
    if result.red_flags:
        print("\nRed flags:")
        for flag in result.red_flags:
            print(f"  - {flag}")
    if result.green_flags:
        print("\nGreen flags:")
        for flag in result.green_flags:
            print(f"  + {flag}")
    if result.transcription:
        print(f"\nTranscription:\n{result.transcription}")
    print(f"\nAdvice: {result.advice}")
    if result.timestamp is not None:
        print(f"\n(history id: {result.timestamp})")


async def wait_for_speech(scanner):
    try:
        while scanner.is_speaking:
            await asyncio.sleep(SPEECH_POLL_INTERVAL_S)
    finally:
        scanner.stop_speaking()


async def cmd_analyze(scanner, args) -> int:
    result = await scanner.analyze(
        text=compose_text(args),
        image=_read_bytes(args.image),
        audio=_read_bytes(args.audio),
        video=_read_bytes(args.video),
        extended_reasoning=args.deep,
    )
    print_result(result)

    if args.export:
        Path(args.export).write_text(render_report(result), encoding="utf-8")
        print(f"Report written to {args.export}")

    if args.speak:
        session = await scanner.speak(result)
        if session is not None:
            await wait_for_speech(scanner)
    return 0


def cmd_history(scanner, args) -> int:
    if args.clear:
        scanner.history_clear()
        print("History cleared.")
        return 0

    if args.show:
        result = scanner.history_select(args.show)
        if result is None:
            print(f"No history entry with id {args.show}", file=sys.stderr)
            return 1
        print(render_report(result, datetime.fromtimestamp(result.timestamp / 1000)))
        return 0

    items = scanner.history_load()
    if not items:
        print("No past analyses.")
        return 0
    for item in items:
        when = datetime.fromtimestamp(item.timestamp / 1000).strftime("%Y-%m-%d %H:%M")
        category = categorize_scam_type(item.result.scam_type)
        print(f"{item.id}  {when}  {item.result.risk_level.value:<8}  {category:<14}  {item.snippet}")
    return 0


def cmd_rate(scanner, args) -> int:
    result = scanner.history_select(args.id)
    if result is None:
        print(f"No history entry with id {args.id}", file=sys.stderr)
        return 1
    if not scanner.rate(result, args.rating):
        print("Could not save feedback.", file=sys.stderr)
        return 1
    print(f"Thanks for the feedback ({args.rating}).")
    return 0


def main(argv: Optional[List[str]] = None, scanner=None) -> int:
    args = build_parser().parse_args(argv)

    settings = scanner.settings if scanner is not None else ScanSettings.from_env()
    setup_logging(settings.log_file, console_level=logging.INFO if args.verbose else logging.WARNING)

    if scanner is None:
        scanner = ShadowScan(settings)

    try:
        if args.command == "analyze":
            return asyncio.run(cmd_analyze(scanner, args))
        if args.command == "history":
            return cmd_history(scanner, args)
        return cmd_rate(scanner, args)
    except ShadowScanError as e:
        logger.debug("Command failed: %r", e)
        print(user_message(e), file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Could not read or write a file: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        scanner.stop_speaking()
        return 130


if __name__ == "__main__":
    sys.exit(main())
