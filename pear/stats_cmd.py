from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
import json
import sqlite3


@dataclass
class JournalAgg:
    by_cmd: dict # {cmd: {count, failed, mean_sec, p50_sec, p95_sec}}
    def to_json(self) -> str:
        return json.dumps(self.by_cmd, indent=2)


def pct(xs: list[float], p: float) -> float:
    if not xs: return 0.0
    xs = sorted(xs)
    i = int(round((p / 100.0) * (len(xs) - 1)))
    return xs[i]


def summarize_journal(sqlite_path: str) -> JournalAgg:
    p = Path(sqlite_path)
    if not p.exists():
        return JournalAgg(by_cmd={})
    conn = sqlite3.connect(str(p))
    try:
        rows = list(conn.execute("SELECT command, started_at, finished_at, status FROM invocations"))
    finally:
        conn.close()
    durations: dict[str, list[float]] = defaultdict(list)
    failed: dict[str, int] = defaultdict(int)
    for cmd, start_s, end_s, status in rows:
        if not (start_s and end_s):
            continue
        start = datetime.fromisoformat(start_s)
        end = datetime.fromisoformat(end_s)
        durations[cmd].append(max(0.0, (end - start).total_seconds()))
        if status != 0:
            failed[cmd] += 1
    out: dict[str, dict] = {}
    for cmd, xs in durations.items():
        mean = sum(xs) / len(xs)
        out[cmd] = {"count": len(xs), "failed": failed[cmd],
                    "mean_sec": round(mean, 3),
                    "p50_sec": round(pct(xs, 50), 3),
                    "p95_sec": round(pct(xs, 95), 3)}
    return JournalAgg(by_cmd=out)


def print_journal_stats(agg: JournalAgg):
    if not agg.by_cmd:
        print("No completed invocations found.")
        return
    print("Invocations by command:")
    for cmd, m in sorted(agg.by_cmd.items()):
        print(f"  {cmd}: count={m['count']} failed={m['failed']} "
              f"mean={m['mean_sec']}s p50={m['p50_sec']}s p95={m['p95_sec']}s")
