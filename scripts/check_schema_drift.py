"""Exit 0 when the configured raffle database matches the models, 1 on drift."""

from __future__ import annotations

import sys

from sqlalchemy.exc import SQLAlchemyError

from eventraffle.db.engine import make_engine
from eventraffle.db.schema import schema_drift


def main() -> int:
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        differences = schema_drift(engine)
    except SQLAlchemyError as exc:
        print(f"Schema drift check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2
    finally:
        engine.dispose()
    if not differences:
        print(f"Schema drift check: OK for {url_display}.")
        return 0
    print(f"Schema drift check: {len(differences)} difference(s) for {url_display}:")
    print("\n".join(differences))
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
