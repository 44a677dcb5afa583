"""Compare the raffle models with a live database schema."""

from __future__ import annotations

from typing import Any

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext
from sqlalchemy.engine import Engine

from eventraffle.models import Base


def _describe(diff: Any) -> str:
    # Column level changes come grouped in a list per column.
    if isinstance(diff, list):
        return "; ".join(_describe(item) for item in diff)
    kind, *args = diff
    names = [getattr(arg, "name", None) or str(arg) for arg in args if arg is not None]
    return f"{kind}: {', '.join(names)}"


def schema_drift(engine: Engine) -> list[str]:
    """Return the changes needed to bring ``engine``'s schema in line with the models.

    An empty list means the database matches. Each entry reads like
    ``"add_table: winners"`` or ``"add_index: ix_winners_event_id"``.
    """
    with engine.connect() as connection:
        context = MigrationContext.configure(
            connection=connection,
            opts={
                "compare_type": True,
                "render_as_batch": connection.dialect.name == "sqlite",
            },
        )
        migration = ag_api.produce_migrations(context, Base.metadata)
    upgrade_ops = migration.upgrade_ops
    if upgrade_ops is None or upgrade_ops.is_empty():
        return []
    return [_describe(diff) for diff in upgrade_ops.as_diffs()]


__all__ = ["schema_drift"]
