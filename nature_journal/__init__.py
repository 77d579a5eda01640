"""
Nature Journal — Package Initializer
======================================

What: A headless photo journal client. It captures or selects a photo, uploads
      it to a media host, stores a captioned entry in a document store and
      browses entries on a calendar.

Architecture Note:

    ┌─────────────────────────────────────┐
    │      JournalApp (root, screens)     │  ← startup/shutdown, navigation
    ├─────────────────────────────────────┤
    │   Handlers (session/capture/cal.)   │  ← event entry points, notices
    ├─────────────────────────────────────┤
    │   Services (identity/upload/store)  │  ← calls to external services
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
