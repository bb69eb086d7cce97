"""Command-line entry points for the engine.

Usage:
    python -m settlement_engine.cli show-config                        # Print the effective configuration
    python -m settlement_engine.cli run batch.json [--as-of 2024-02-01] # Reconcile a JSON batch

The batch file uses the same shape as the POST /api/reconciliation/run body.
"""

import json
import logging
import sys
from datetime import date

from settlement_engine.config import get_engine_config, settings
from settlement_engine.middleware.exceptions import EngineError
from settlement_engine.schemas.reconciliation import RunRequest
from settlement_engine.services.reconciliation import reconcile_raw

USAGE = "Usage: python -m settlement_engine.cli [show-config|run <batch.json> [--as-of YYYY-MM-DD]]"


def show_config():
    print(get_engine_config().model_dump_json(indent=2))


def run_batch(path: str, as_of: date | None = None) -> int:
    """Reconcile the batch in `path` and print the run as JSON.

    Exit status is 1 when any record was rejected or any line item failed
    to reconcile, so the command can gate a pipeline.
    """
    with open(path, encoding="utf-8") as fh:
        request = RunRequest.model_validate(json.load(fh))

    run = reconcile_raw(request, get_engine_config(), as_of or request.as_of or date.today())
    print(run.model_dump_json(indent=2, by_alias=True))

    summary = run.summary
    print(
        f"\n{summary.total_alerts} alert(s), health {summary.health_score} "
        f"({summary.health_status.value}), {summary.rejected_count} rejected, "
        f"{summary.exception_count} exception(s)",
        file=sys.stderr,
    )
    return 1 if summary.rejected_count or summary.exception_count else 0


def main(argv: list[str]) -> int:
    logging.basicConfig(level=settings.log_level.upper())

    cmd = argv[0] if argv else ""
    try:
        if cmd == "show-config":
            show_config()
            return 0
        if cmd == "run" and len(argv) >= 2:
            as_of = None
            if "--as-of" in argv:
                pos = argv.index("--as-of")
                if pos + 1 >= len(argv):
                    print(USAGE)
                    return 2
                as_of = date.fromisoformat(argv[pos + 1])
            return run_batch(argv[1], as_of)
    except EngineError as exc:
        print(f"{exc.error_code}: {exc.message}", file=sys.stderr)
        return 2

    print(USAGE)
    return 2


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
