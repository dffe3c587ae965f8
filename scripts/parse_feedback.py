from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from resume_review.feedback import parse_ai_feedback  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Parse a saved AI feedback response into a feedback record.")
    parser.add_argument("path", nargs="?", help="File holding the raw AI response (reads stdin when omitted)")
    parser.add_argument("--quiet", action="store_true", help="Only print the parse method and success flag")
    args = parser.parse_args()

    if args.path:
        raw_text = Path(args.path).read_text(encoding="utf-8")
    else:
        raw_text = sys.stdin.read()

    result = parse_ai_feedback(raw_text)
    print(f"method: {result.method}")
    print(f"success: {str(result.success).lower()}")
    if result.error:
        print(f"error: {result.error}")
    if not args.quiet:
        print(json.dumps(result.feedback.to_payload(), indent=2, ensure_ascii=False))

    if not result.success:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
