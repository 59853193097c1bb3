"""Dashboard refresh entry point.

Usage:
    python run_dashboard.py [--no-cache]

Loads config.yaml, builds the market and news services, runs one refresh
cycle and writes the payload to output/dashboard_snapshot.json.
"""

import json
import os
import sys
from dotenv import load_dotenv

load_dotenv()  # must precede niftydesk imports so env vars are available at module load

from niftydesk.core.config import load_config  # noqa: E402
from niftydesk.core.logger import logger  # noqa: E402
from niftydesk.pipeline.engine import DashboardEngine  # noqa: E402


def main(argv: list[str]) -> int:
    """Run one refresh. Returns 0 on success, 1 on failure."""
    try:
        config = load_config()
    except (FileNotFoundError, ValueError) as exc:
        logger.error(f"run_dashboard: failed to load config: {exc}")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    output_dir = config.get("output_dir", "output")
    use_cache = "--no-cache" not in argv

    try:
        engine = DashboardEngine(config=config)
        result = engine.refresh(use_cache=use_cache)
    except Exception as exc:
        logger.error(f"run_dashboard: refresh raised: {exc}", exc_info=True)
        print(f"ERROR: refresh failed: {exc}", file=sys.stderr)
        return 1

    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, "dashboard_snapshot.json")
    with open(path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2)

    if result.market:
        q = result.market.quote
        print(f"{q.symbol}: {q.price:.2f} ({q.change_percent:+.2f}%) via {result.market.source}")
    for err in result.errors:
        print(f"WARNING: {err}", file=sys.stderr)
    print(f"SUCCESS: {len(result.signals)} news signals written to {path}")
    logger.info(f"run_dashboard: completed, {len(result.signals)} signals → {path}")
    return 0 if result.market else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
