"""
Starboard — Community Star Board with Special Event Bonuses
=============================================================
Members post dated work, other members star it, and a leaderboard tracks
reputation.  Admins define special events that add bonus points on
certain days, optionally recurring and optionally limited to a time of
day, and optionally announced in a site-wide banner while they run.

Package layout::

    starboard/
    ├── config.py          # YAML → typed Python config
    ├── errors.py          # Error taxonomy (detail + HTTP status)
    ├── maintenance.py     # Periodic jobs: occurrences + star reconciliation
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine, sessions, async helpers
    │   ├── models.py      # ORM models
    │   └── seed.py        # Default settings seeder
    ├── engine/
    │   ├── activation.py  # Is an event active today / right now?
    │   ├── selector.py    # Which event applies; notification + listing filters
    │   ├── instances.py   # Recurring occurrence planning
    │   ├── scoring.py     # Approval award calculation
    │   ├── stars.py       # Star toggle planning + rejection rules
    │   └── cache.py       # In-memory settings cache
    ├── services/
    │   ├── event_service.py          # Event reads + audited admin CRUD
    │   ├── instance_service.py       # Occurrence top-up and pruning
    │   ├── scoring_service.py        # Idempotent approval awards
    │   ├── star_service.py           # Transactional star ledger
    │   ├── moderation_service.py     # Approve/reject/delete content
    │   ├── leaderboard_service.py    # Ranking
    │   ├── reconciliation_service.py # Star counter drift repair
    │   └── audit.py                  # admin_log helpers
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT auth, engine/config/cache dependencies
        └── routes/        # Event, content and public endpoints
"""

__version__ = "0.1.0"
