from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from hospital_admin.app import HospitalApp
from hospital_admin.utils.app_settings import BACKENDS, load_settings

logger = logging.getLogger("hospital_admin")


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="hospital_admin", description="Hospital data store maintenance")
    ap.add_argument("--data-dir", help="Override HOSPITAL_DATA_DIR")
    ap.add_argument("--backend", choices=BACKENDS, help="Override the configured storage backend")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("stats", help="Print the number of records per collection")

    exp = sub.add_parser("export", help="Dump every collection as JSON")
    exp.add_argument("-o", "--output", help="Write to this file instead of stdout")

    imp = sub.add_parser("import", help="Overwrite collections from a JSON export")
    imp.add_argument("file", help="JSON document produced by 'export'")

    seed = sub.add_parser("seed", help="Load sample data into an empty store")
    seed.add_argument("file", nargs="?", help="Seed document (default: bundled sample data)")

    clear = sub.add_parser("clear", help="Delete every record of this namespace")
    clear.add_argument("--yes", action="store_true", help="Confirm the deletion")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    env = dict(os.environ)
    if args.data_dir:
        env["HOSPITAL_DATA_DIR"] = args.data_dir
    if args.backend:
        env["HOSPITAL_BACKEND"] = args.backend
    settings = load_settings(env)

    logging.basicConfig(
        level=logging.DEBUG if (args.verbose or settings.dev_mode) else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    with HospitalApp.from_settings(settings, seed=False) as app:
        if args.command == "stats":
            for collection, count in app.store.statistics().items():
                print(f"{collection:<14} {count}")
            return 0

        if args.command == "export":
            document = app.store.export_data()
            if args.output:
                out_path = Path(args.output)
                out_path.parent.mkdir(parents=True, exist_ok=True)
                out_path.write_text(document, encoding="utf-8")
                logger.info("Exported to %s", out_path)
            else:
                print(document)
            return 0

        if args.command == "import":
            try:
                document = json.loads(Path(args.file).read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.error("Cannot read %s: %s", args.file, exc)
                return 1
            if not app.store.import_data(document):
                logger.error("Import from %s failed", args.file)
                return 1
            logger.info("Imported %s", args.file)
            return 0

        if args.command == "seed":
            loaded = app.seed(args.file or settings.seed_path)
            if not loaded:
                logger.info("Nothing seeded (store not empty or no data)")
            return 0

        if args.command == "clear":
            if not args.yes:
                logger.error("Refusing to clear without --yes")
                return 2
            return 0 if app.store.clear() else 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
