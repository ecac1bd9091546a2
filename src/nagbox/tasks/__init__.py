"""
Reminder engine.

Components:
- task_models.py: Task value type and constants
- task_store.py: SQLite-backed storage with all-or-nothing transactions
- status.py: pure status mutator (catch-up, start/stop, seen/unseen)
- task_scheduler.py: keeps the single one-shot timer at the earliest next fire
- alarm_handler.py: handles a timer fire (notify, catch up, persist, re-arm)
- dismissal.py: dismiss / stop reactions to a displayed reminder
- task_service.py: command queue facade wiring all of the above
"""
