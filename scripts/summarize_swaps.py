#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import os
from collections import Counter
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv


@dataclass(slots=True)
class SwapSummary:
    total_swaps: int = 0
    live_swaps: int = 0
    dry_run_swaps: int = 0
    skipped_lines: int = 0
    first_timestamp: str | None = None
    last_timestamp: str | None = None
    pair_counts: dict[str, int] = field(default_factory=dict)
    in_amount_totals: dict[str, int] = field(default_factory=dict)
    out_amount_totals: dict[str, int] = field(default_factory=dict)


def read_records(path: Path) -> tuple[list[dict[str, Any]], int]:
    records: list[dict[str, Any]] = []
    skipped = 0
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        try:
            payload = json.loads(stripped)
        except json.JSONDecodeError:
            skipped += 1
            continue
        if isinstance(payload, dict):
            records.append(payload)
        else:
            skipped += 1
    return records, skipped


def summarize(records: list[dict[str, Any]], *, skipped_lines: int = 0) -> SwapSummary:
    summary = SwapSummary(skipped_lines=skipped_lines)
    pairs: Counter[str] = Counter()
    in_totals: Counter[str] = Counter()
    out_totals: Counter[str] = Counter()
    timestamps: list[str] = []

    for record in records:
        input_token = str(record.get("input_token") or "?")
        output_token = str(record.get("output_token") or "?")
        summary.total_swaps += 1
        if record.get("dry_run"):
            summary.dry_run_swaps += 1
        else:
            summary.live_swaps += 1

        pairs[f"{input_token}->{output_token}"] += 1
        in_totals[input_token] += int(record.get("in_amount") or 0)
        out_totals[output_token] += int(record.get("out_amount") or 0)
        if record.get("timestamp"):
            timestamps.append(str(record["timestamp"]))

    if timestamps:
        timestamps.sort()
        summary.first_timestamp = timestamps[0]
        summary.last_timestamp = timestamps[-1]
    summary.pair_counts = dict(pairs)
    summary.in_amount_totals = dict(in_totals)
    summary.out_amount_totals = dict(out_totals)
    return summary


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize the swap journal written by the webhook trader.")
    parser.add_argument(
        "--path",
        default=os.getenv("SWAP_LOG_PATH", ""),
        help="Journal path. Defaults to SWAP_LOG_PATH.",
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON.")
    return parser.parse_args()


def main() -> None:
    load_dotenv(Path(__file__).resolve().parents[1] / ".env")
    args = parse_args()
    raw_path = args.path.strip()
    if not raw_path:
        raise ValueError("SWAP_LOG_PATH is required (set env or --path).")

    path = Path(raw_path).expanduser()
    records, skipped = read_records(path)
    summary = summarize(records, skipped_lines=skipped)

    if args.json:
        print(json.dumps(asdict(summary), ensure_ascii=False, indent=2))
        return

    print(f"[info] path={path}")
    print(f"[info] total={summary.total_swaps} live={summary.live_swaps} dry_run={summary.dry_run_swaps}")
    print(f"[info] skipped_lines={summary.skipped_lines}")
    print(f"[info] window={summary.first_timestamp or '-'} .. {summary.last_timestamp or '-'}")
    print("")
    print("[pairs]")
    for pair, count in sorted(summary.pair_counts.items()):
        print(f"  {pair}: {count}")
    print("")
    print("[base_unit_totals]")
    for token, amount in sorted(summary.in_amount_totals.items()):
        print(f"  sold {token}: {amount}")
    for token, amount in sorted(summary.out_amount_totals.items()):
        print(f"  bought {token}: {amount}")


if __name__ == "__main__":
    main()
