"""Utility script to delete notifications whose expiry date has passed."""

from __future__ import annotations

import argparse
import logging

from app.application.use_cases.notifications import cleanup_expired, count_expired
from app.config import get_settings
from app.domain.exceptions import StorageError
from app.infrastructure.database import SessionLocal, initialize_database


def parse_args() -> argparse.Namespace:
    """Parse command line arguments for the expiry sweep."""

    parser = argparse.ArgumentParser(
        description="Delete expired notifications from the database.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Solo informa cuántas notificaciones se eliminarían, sin borrarlas.",
    )
    return parser.parse_args()


def main() -> None:
    """Run the expiry sweep once using the configured database."""

    args = parse_args()
    logging.basicConfig(level=get_settings().log_level.upper())

    initialize_database()

    session = SessionLocal()
    try:
        if args.dry_run:
            total = count_expired(session)
            print(f"Notificaciones vencidas pendientes de eliminar: {total}")
            return
        deleted = cleanup_expired(session)
    except StorageError as exc:
        raise SystemExit(f"No se pudieron eliminar las notificaciones: {exc}") from exc
    else:
        print(f"Notificaciones eliminadas: {deleted}")
    finally:
        session.close()


if __name__ == "__main__":
    main()
