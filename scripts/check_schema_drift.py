from __future__ import annotations

import sys
from collections import Counter
from typing import Optional

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext

from golfdraw.db.engine import make_engine
from golfdraw.models import Base

IGNORED_TABLES = {"alembic_version"}


def _include_object(obj, name, type_, reflected, compare_to) -> bool:
    return not (type_ == "table" and name in IGNORED_TABLES)


def _flatten(ops) -> list:
    flat = []
    for op in ops:
        sub_ops = getattr(op, "ops", None)
        if sub_ops:
            flat.extend(_flatten(sub_ops))
        else:
            flat.append(op)
    return flat


def _table_of(op) -> str:
    for attr in ("table_name", "source_name"):
        value = getattr(op, attr, None)
        if value:
            return value
    table = getattr(op, "table", None)
    return getattr(table, "name", "?")


def main(argv: Optional[list[str]] = None) -> int:
    """Compare the live schema with the models.

    Exit codes: 0 in sync, 1 drift found, 2 the check itself failed.
    """
    args = sys.argv[1:] if argv is None else argv
    engine = make_engine(args[0] if args else None)
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            context = MigrationContext.configure(
                connection=connection,
                opts={
                    "compare_type": True,
                    "include_object": _include_object,
                    "render_as_batch": connection.dialect.name == "sqlite",
                },
            )
            migration = ag_api.produce_migrations(context, Base.metadata)
    except Exception as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()

    upgrade_ops = migration.upgrade_ops
    if upgrade_ops is None or upgrade_ops.is_empty():
        print(f"Schema drift check: OK for {url_display}.")
        return 0

    changes = _flatten(upgrade_ops.ops or [])
    per_table = Counter(_table_of(op) for op in changes)
    print(f"Schema drift check: FAILED for {url_display}.")
    for table, count in sorted(per_table.items()):
        print(f"  {table}: {count} difference(s)")
    for op in changes:
        print(f"  - {op}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
