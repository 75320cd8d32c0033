import argparse
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from dailymatch.config import LOG_LEVEL
from dailymatch.jobs import run_daily_sweep, run_sweep_loop


def main() -> None:
    parser = argparse.ArgumentParser(description="Expire daily match sessions whose day has ended")
    parser.add_argument("--loop", action="store_true", help="keep running and sweep at every day boundary")
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    if args.loop:
        run_sweep_loop()
        return

    result = run_daily_sweep()
    print("Sweep completed")
    print(f"- today: {result.today}")
    print(f"- scanned: {result.scanned_count}")
    print(f"- expired: {result.expired_count}")
    print(f"- failed: {result.failed_count}")
    if result.failed_count:
        sys.exit(1)


if __name__ == "__main__":
    main()
