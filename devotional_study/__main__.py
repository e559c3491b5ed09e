"""CLI entry point for devotional-study.

Usage:
  python -m devotional_study serve [--port PORT] [--host HOST]
  python -m devotional_study stop
  python -m devotional_study restart [--port PORT]
  python -m devotional_study status
  python -m devotional_study generate PASSAGE [--count N]
  python -m devotional_study check FILE
"""
from __future__ import annotations

import asyncio
import json
import os
import signal
import sys
from pathlib import Path

PID_FILE = Path(__file__).resolve().parent.parent / ".server.pid"


def main():
    args = sys.argv[1:]
    command = args[0] if args else "serve"

    if command == "serve":
        _serve(args[1:])
    elif command == "stop":
        _stop()
    elif command == "restart":
        _restart(args[1:])
    elif command == "status":
        _status()
    elif command == "generate":
        _generate(args[1:])
    elif command == "check":
        _check(args[1:])
    else:
        print(f"Unknown command: {command}")
        print("Commands: serve, stop, restart, status, generate, check")
        sys.exit(1)


def _parse_flag(args: list[str], name: str, default: str) -> str:
    for i, a in enumerate(args):
        if a == name and i + 1 < len(args):
            return args[i + 1]
    return default


def _positional(args: list[str]) -> list[str]:
    """Arguments that are neither flags nor flag values."""
    out = []
    skip = False
    for a in args:
        if skip:
            skip = False
        elif a.startswith("--"):
            skip = True
        else:
            out.append(a)
    return out


def _read_pid() -> int | None:
    """Read PID from file, return None if stale or missing."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        PID_FILE.unlink(missing_ok=True)
        return None


def _stop() -> bool:
    """Stop a running server. Returns True if a server was stopped."""
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
        return False
    try:
        os.kill(pid, signal.SIGTERM)
        print(f"Stopped server (PID {pid}).")
        PID_FILE.unlink(missing_ok=True)
        return True
    except ProcessLookupError:
        print("Server was not running (stale PID file removed).")
        PID_FILE.unlink(missing_ok=True)
        return False


def _status():
    pid = _read_pid()
    if pid is None:
        print("Server is not running.")
    else:
        print(f"Server is running (PID {pid}).")


def _restart(args: list[str]):
    import time
    _stop()
    time.sleep(1)
    _serve(args)


def _serve(args: list[str]):
    import uvicorn

    existing = _read_pid()
    if existing is not None:
        print(f"Server already running (PID {existing}). Use 'restart' or 'stop' first.")
        sys.exit(1)

    port = int(_parse_flag(args, "--port", "8766"))
    host = _parse_flag(args, "--host", "127.0.0.1")
    PID_FILE.write_text(str(os.getpid()))

    print(f"Starting Devotional Study on http://{host}:{port}")
    print("Press Ctrl+C to stop\n")
    try:
        uvicorn.run(
            "devotional_study.app:app",
            host=host,
            port=port,
            reload=False,
            timeout_graceful_shutdown=5,
        )
    finally:
        PID_FILE.unlink(missing_ok=True)


def _generate(args: list[str]):
    from devotional_study.config import load_settings, make_llm
    from devotional_study.errors import MalformedResponse, ProviderError
    from devotional_study.generator import generate_study

    passage = " ".join(_positional(args))
    if not passage:
        print("Usage: generate PASSAGE [--count N]")
        sys.exit(1)

    settings = load_settings()
    count = int(_parse_flag(args, "--count", str(settings.question_count)))
    try:
        llm = make_llm(settings)
    except ValueError as e:
        print(e)
        sys.exit(1)

    print(f"Generating study for {passage!r} using {llm.name()}...", file=sys.stderr)
    try:
        doc = asyncio.run(generate_study(
            llm, passage,
            question_count=count,
            language=settings.language,
            temperature=settings.temperature,
            max_attempts=settings.max_attempts,
        ))
    except MalformedResponse as e:
        print(f"The response could not be parsed ({e.reason}). Try again.", file=sys.stderr)
        sys.exit(1)
    except ProviderError as e:
        print(f"Provider error: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(doc.to_dict(), indent=2, ensure_ascii=False))


def _check(args: list[str]):
    """Sanitize a saved raw response and report what was recovered."""
    from devotional_study.errors import MalformedResponse
    from devotional_study.sanitizer import sanitize

    paths = _positional(args)
    if not paths:
        print("Usage: check FILE")
        sys.exit(1)

    raw = Path(paths[0]).read_text(encoding="utf-8", errors="replace")
    try:
        doc = sanitize(raw)
    except MalformedResponse as e:
        print(f"Malformed: {e.reason}")
        sys.exit(1)

    print(f"Title:              {doc.title or '(none)'}")
    print(f"Key verses:         {len(doc.key_verses)}")
    print(f"Reflection prompts: {len(doc.reflection_prompts)}")
    print(f"Daily plan days:    {len(doc.daily_plan)}")
    print(f"Quiz questions:     {len(doc.quiz)}")
    for i, v in enumerate(doc.quiz, 1):
        reason = v.problem()
        status = "ok" if reason is None else f"BROKEN ({reason})"
        print(f"  [{i:2d}] {v.TAG:20s} {status}")


if __name__ == "__main__":
    main()
