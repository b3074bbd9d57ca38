from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from golfdraw.db.engine import get_sessionmaker, make_engine
from golfdraw.models import DrawSettings, JackpotTracker


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the requested revision."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def ensure_singletons() -> None:
    """Insert the default draw settings and an empty jackpot if missing."""
    engine = make_engine()
    Session = get_sessionmaker(engine)
    with Session.begin() as session:
        settings = DrawSettings.current(session)
        jackpot = JackpotTracker.current(session)
        print(
            "Draw settings: base={base} tiers={t1}/{t2}/{t3} cap={cap}; jackpot={jp}".format(
                base=settings.base_amount_per_sub,
                t1=settings.tier1_percent,
                t2=settings.tier2_percent,
                t3=settings.tier3_percent,
                cap=settings.jackpot_cap,
                jp=jackpot.amount,
            )
        )
    engine.dispose()


def print_tables() -> None:
    """Inspect the configured database and print all table names."""
    engine = make_engine()
    insp = inspect(engine)
    print("Current tables:", ", ".join(sorted(insp.get_table_names())))
    engine.dispose()


def main() -> None:
    """Apply migrations, seed the single-row tables and report the schema."""
    upgrade_db()
    ensure_singletons()
    print_tables()


if __name__ == "__main__":
    main()
