"""
Parley — Discussion Forum Backend
==================================
Users open topics (channels), start threads inside them and post messages
to those threads.  Parley keeps the topic list ranked by activity, sweeps
stale topics through their lifecycle (soft-delete, archive prompt, archive)
and gates private topics behind a passcode.

Package layout::

    parley/
    ├── config.py          # YAML → typed Python config, secret loading
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # ORM models (users, topics, threads, …)
    ├── engine/
    │   ├── scoring.py     # Topic summary + default sort average (pure)
    │   ├── lifecycle.py   # Topic lifecycle transitions (pure)
    │   └── access.py      # Role → allowed actions lookup
    ├── services/
    │   ├── topic_service.py        # Create/update, ranking, passcodes
    │   ├── lifecycle_service.py    # Soft-delete / archive sweeps
    │   ├── notification_service.py # Archive token + email gateway
    │   ├── token_service.py        # Single-use archive tokens (JWT)
    │   └── email_service.py        # SMTP delivery
    ├── worker/
    │   ├── __main__.py    # ``python -m parley.worker``
    │   └── tasks.py       # Periodic sweep loops
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Auth + access-gate dependencies
        └── routes/        # Topic endpoints
"""

__version__ = "0.1.0"
