"""
Programmatic Alembic migration runner.

Allows running migrations without an alembic.ini by configuring the script location
to this package's migrations directory.

Usage examples:
    python -m src.db.run_migrations upgrade head
    python -m src.db.run_migrations downgrade -1
    python -m src.db.run_migrations stamp head
    python -m src.db.run_migrations history
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List

from alembic import command
from alembic.config import Config

from src.db.config import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

# Command name -> (alembic function, default arguments)
_COMMANDS: Dict[str, tuple[Callable[..., object], List[str]]] = {
    "upgrade": (command.upgrade, ["head"]),
    "downgrade": (command.downgrade, ["-1"]),
    "stamp": (command.stamp, ["head"]),
    "current": (command.current, []),
    "history": (command.history, []),
    "heads": (command.heads, []),
}


# PUBLIC_INTERFACE
def alembic_config() -> Config:
    """Alembic configuration pointing at the bundled migrations and the configured database."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # Offline URL; env.py connects with the async URL when online.
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> None:
    """Run an Alembic command with programmatic configuration."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print("No Alembic arguments provided. Example: upgrade head")
        sys.exit(1)

    name, rest = args[0], args[1:]
    if name not in _COMMANDS:
        print(f"Unsupported Alembic command: {name}. Choose from: {', '.join(sorted(_COMMANDS))}")
        sys.exit(2)

    func, defaults = _COMMANDS[name]
    logger.info("alembic %s %s", name, " ".join(rest or defaults))
    func(alembic_config(), *(rest or defaults))


if __name__ == "__main__":
    main()
