import argparse
import sys

from onekey_license_server.config import Settings, configure_logging
from onekey_license_server.errors import LicenseServerError
from onekey_license_server.lifecycle import LifecycleEngine
from onekey_license_server.store import KeyStore


def issue(engine: LifecycleEngine, count: int) -> int:
    failures = 0
    for _ in range(count):
        try:
            key = engine.issue_key()
        except LicenseServerError as e:
            print(f"[FAIL] {e.message}")
            failures += 1
            continue
        print(f"[OK] issued: {key}")
    return failures


def clean(engine: LifecycleEngine, days: float) -> int:
    try:
        deleted = engine.clean_old_keys(days)
    except LicenseServerError as e:
        print(f"[FAIL] {e.message}")
        return 1
    print(f"[OK] deleted {deleted} keys older than {days} day(s)")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Issue one-time license keys or clean old ones.")
    parser.add_argument("--count", type=int, default=1, help="number of keys to issue")
    parser.add_argument("--clean", type=float, metavar="DAYS", help="delete keys older than DAYS instead")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    engine = LifecycleEngine(KeyStore(settings), settings)

    if args.clean is not None:
        return clean(engine, args.clean)
    return 1 if issue(engine, args.count) else 0


if __name__ == "__main__":
    sys.exit(main())
