# pushup_alarm/runtime/cli.py
from __future__ import annotations
import argparse
import json
import sys
from typing import Iterable, Iterator, List, Optional

from pushup_alarm.common import config
from pushup_alarm.counter.detector import DetectionResult, make_detector


def _frames(lines: Iterable[str]) -> Iterator[dict]:
    for n, line in enumerate(lines, 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            print(f"line {n}: skipped ({e})", file=sys.stderr, flush=True)
            continue
        if isinstance(obj, list):
            obj = {"landmarks": obj}
        if isinstance(obj, dict):
            yield obj


def replay(lines: Iterable[str], mode: str = "pose", target: Optional[int] = None, verbose: bool = False) -> List[DetectionResult]:
    """Feed a JSON-lines recording (one pose frame or motion sample per line) through a detector."""
    detector = make_detector(
        mode,
        on_rep=lambda ev: print(f"rep {ev.rep_count}" + (f" / {target}" if target else ""), flush=True),
    )
    results = []
    for frame in _frames(lines):
        if mode == "pose":
            res = detector.process(frame.get("landmarks") or [], frame.get("ts"))
        else:
            res = detector.process(frame)
        results.append(res)
        if verbose:
            print(json.dumps(res.as_dict()), flush=True)
        if target and res.count >= target:
            print("target reached, alarm dismissed", flush=True)
            break
    return results


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="pushup-alarm")
    sub = parser.add_subparsers(dest="cmd", required=True)

    rp = sub.add_parser("replay", help="count reps in a recorded JSON-lines file")
    rp.add_argument("file", help="recording path, or - for stdin")
    rp.add_argument("--mode", choices=["pose", "motion", "threshold"], default="pose")
    rp.add_argument("--target", type=int, default=None)
    rp.add_argument("-v", "--verbose", action="store_true")

    sp = sub.add_parser("serve", help="run the HTTP/WebSocket host")
    sp.add_argument("--host", default="127.0.0.1")
    sp.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    config.configure_logging()

    if args.cmd == "replay":
        if args.file == "-":
            results = replay(sys.stdin, args.mode, args.target, args.verbose)
        else:
            with open(args.file, "r", encoding="utf-8") as fh:
                results = replay(fh, args.mode, args.target, args.verbose)
        total = results[-1].count if results else 0
        print(f"frames: {len(results)}  reps: {total}", flush=True)
        return 0

    import uvicorn
    uvicorn.run("pushup_alarm.runtime.server:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
