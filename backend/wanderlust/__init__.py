"""
Wanderlust: Application Package
===============================

What: A server-rendered listings marketplace (vacation-rental browsing and
      booking demo). Users register, log in, publish listings with images and
      review each other's listings.

Architecture Note:
    The package is layered the same way top to bottom:

    ┌─────────────────────────────────────┐
    │   Bootstrap (startup sequencing)    │  ← config → connect → session → auth → routes → listen
    ├─────────────────────────────────────┤
    │   Middleware (session, flash, auth, │  ← per-request state, error funnel
    │   locals, error funnel)             │
    ├─────────────────────────────────────┤
    │   Routes + Guards (HTTP layer)      │  ← thin handlers, FastAPI dependencies
    ├─────────────────────────────────────┤
    │   Services (business logic)         │  ← listings, reviews, users, files
    ├─────────────────────────────────────┤
    │   Models + Database (persistence)   │  ← async SQLAlchemy
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
