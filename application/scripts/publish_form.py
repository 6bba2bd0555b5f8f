#!/usr/bin/env python3
"""Generate a booking form from a config JSON file and publish it (local dir or S3, per DEPLOY_TARGET)."""

import argparse
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env from application/ or repo root so DEPLOY_TARGET, FORMS_BUCKET_NAME etc. are set
_app_dir = Path(__file__).resolve().parent.parent
_repo_root = _app_dir.parent
load_dotenv(_app_dir / ".env")
load_dotenv(_app_dir / ".env.local")
load_dotenv(_repo_root / ".env")
load_dotenv(_repo_root / ".env.local")

from src.booking_form import deployer, generator


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("config", help="path to the form config JSON (bare config or stored form record)")
    parser.add_argument("--store-id", required=True)
    parser.add_argument("--form-id", required=True)
    parser.add_argument("--output", help="write the HTML here instead of deploying")
    args = parser.parse_args(argv)

    try:
        raw = json.loads(Path(args.config).read_text(encoding="utf-8"))
        html = generator.generate(raw, args.form_id, args.store_id)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.output:
        Path(args.output).write_text(html, encoding="utf-8")
        print(f"Wrote {args.output} ({generator.content_hash(html)})")
        return 0

    try:
        result = deployer.deploy_form(args.store_id, args.form_id, html)
    except (deployer.DeployError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    state = "unchanged" if result.unchanged else "published"
    print(f"{state}: {result.url} ({result.content_hash})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
