"""Create tables and load a sample event for local development.

    python -m app.seed
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy.orm import Session

from app.core.logging import configure_logging
from app.db import SessionLocal, engine
from app.models import Base, Event, EventAirport

logger = structlog.get_logger(__name__)

SAMPLE_AIRPORTS = [
    ("SFO", "San Francisco International Airport", "San Francisco"),
    ("SJC", "Norman Y. Mineta San Jose International Airport", "San Jose"),
]


def init_db() -> None:
    Base.metadata.create_all(engine)


def seed_events(db: Session, now: datetime | None = None) -> dict[str, int]:
    """Add the sample event if missing. Returns a summary."""
    now = now or datetime.now(timezone.utc)
    added = 0
    skipped = 0

    if db.get(Event, "devsummit-sf") is None:
        starts_at = (now + timedelta(days=30)).replace(hour=16, minute=0, second=0, microsecond=0)
        event = Event(
            id="devsummit-sf",
            name="DevSummit San Francisco",
            location="Moscone Center",
            city="San Francisco",
            state="CA",
            description="Three days of talks and workshops.",
            starts_at=starts_at,
            ends_at=starts_at + timedelta(days=3),
            airports=[
                EventAirport(code=code, name=name, city=city) for code, name, city in SAMPLE_AIRPORTS
            ],
        )
        db.add(event)
        added += 1
    else:
        skipped += 1

    db.commit()
    return {"added": added, "skipped": skipped}


def main() -> None:
    configure_logging()
    init_db()
    with SessionLocal() as db:
        summary = seed_events(db)
    logger.info("seed_completed", **summary)


if __name__ == "__main__":
    main()
