#!/usr/bin/env python3
"""Start a priority or fairness run against the harness API and watch it progress.

Example:
    python tools/load_generator.py \
        --prefix fair-01 \
        --mode fairness \
        --bands bands.yaml \
        --jobs 300 \
        --interval 2

The bands file is either a list of {key, weight, count} entries or a mapping
with a "bands" list.
"""
from __future__ import annotations

import argparse
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
import yaml

STEPS_PER_JOB = 5


def load_bands(path: Optional[Path]) -> List[Dict[str, Any]]:
    if path is None:
        return []
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("bands", [])
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def build_run_config(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "workflowIdPrefix": args.prefix,
        "numberOfWorkflows": args.jobs,
        "mode": args.mode,
        "bands": load_bands(args.bands),
        "disableFairness": args.disable_fairness,
    }


def format_progress(results: Dict[str, Any], mode: str) -> str:
    """One line per class: "<class> jobs=<n> steps=[s1 s2 s3 s4 s5]"."""
    groups = results.get("workflowsByFairness" if mode == "fairness" else "workflowsByPriority", [])
    lines = []
    for group in groups:
        label = group.get("fairnessKey") if mode == "fairness" else f"P{group.get('workflowPriority')}"
        done = {a["activityNumber"]: a["numberCompleted"] for a in group.get("activities", [])}
        steps = " ".join(str(done.get(step, 0)) for step in range(1, STEPS_PER_JOB + 1))
        lines.append(f"  {label:<16} jobs={group.get('numberOfWorkflows', 0):<5} steps=[{steps}]")
    return "\n".join(lines)


def is_finished(results: Dict[str, Any], mode: str, expected: int) -> bool:
    groups = results.get("workflowsByFairness" if mode == "fairness" else "workflowsByPriority", [])
    finished = 0
    for group in groups:
        for activity in group.get("activities", []):
            if activity["activityNumber"] == STEPS_PER_JOB:
                finished += activity["numberCompleted"]
    return expected > 0 and finished >= expected


def main() -> None:
    parser = argparse.ArgumentParser(description="Priority/fairness run generator")
    parser.add_argument("--url", default="http://localhost:7080")
    parser.add_argument("--prefix", default=f"run-{int(time.time())}")
    parser.add_argument("--mode", choices=["priority", "fairness"], default="priority")
    parser.add_argument("--jobs", type=int, default=100, help="jobs to start (ignored when bands carry counts)")
    parser.add_argument("--bands", type=Path, default=None, help="YAML file with fairness bands")
    parser.add_argument("--disable-fairness", action="store_true", help="tag jobs but send weight 0")
    parser.add_argument("--interval", type=float, default=2.0, help="seconds between status polls")
    parser.add_argument("--timeout", type=float, default=600.0, help="give up polling after this many seconds")
    args = parser.parse_args()

    session = requests.Session()
    base = args.url.rstrip("/")
    run_config = build_run_config(args)

    print(f"[{time.strftime('%H:%M:%S')}] starting {args.mode} run {args.prefix}")
    response = session.post(f"{base}/start-workflows", json=run_config, timeout=600)
    if response.status_code != 200:
        raise SystemExit(f"start failed ({response.status_code}): {response.text}")

    status_path = "/run-status-fairness" if args.mode == "fairness" else "/run-status"
    deadline = time.monotonic() + args.timeout
    while time.monotonic() < deadline:
        try:
            resp = session.get(f"{base}{status_path}", params={"runPrefix": args.prefix}, timeout=20)
            resp.raise_for_status()
            results = resp.json()
            total = results.get("totalWorkflowsInTest", 0)
            print(f"[{time.strftime('%H:%M:%S')}] {args.prefix}: {total} jobs")
            print(format_progress(results, args.mode))
            if is_finished(results, args.mode, total):
                print("All jobs finished")
                return
            time.sleep(max(0.5, args.interval))
        except KeyboardInterrupt:
            print("Stopping load generator")
            return
        except requests.RequestException as exc:
            print(f"[{time.strftime('%H:%M:%S')}] error: {exc}")
            time.sleep(max(0.5, args.interval))
    raise SystemExit(f"Run {args.prefix} did not finish within {args.timeout:.0f}s")


if __name__ == "__main__":
    main()
