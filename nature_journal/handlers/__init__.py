# Handlers package init
"""
Nature Journal — Event Handlers
=================================

What:  The entry points a UI (or any host) calls in response to user events.
How:   Handlers are thin. They check state and preconditions, call services,
       and turn every JournalError into a Notice. No pipeline error escapes
       a handler.

Handler Inventory:
    - session.py:  SessionBootstrap (identity lifecycle, gating)
    - capture.py:  CaptureHandler   (acquire → upload → persist)
    - calendar.py: CalendarHandler  (query → group → select → delete)
    - notices.py:  NoticeBoard, always_confirm (default host callbacks)
"""
