"""
Task reminder subsystem.

Components:
- task_models.py: data structures (Task, User, ScanWindow, DeliveryResult, CycleReport)
- task_store.py: SQLite-backed storage + candidate query + notified guard update
- task_window.py: due-time window for a scan
- task_selector.py: candidate selection and owner address resolution
- task_dispatcher.py: reminder text + bounded, timed transport sends
- task_guard.py: conditional "mark notified" after confirmed delivery
- task_scheduler.py: fixed-cadence loop tying the above together
- task_api.py: small owner-facing helpers (create/reschedule/complete)
"""
