# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use:
- .env (local, gitignored)
- config_local.py (local safe overrides, gitignored)

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "NAGBOX_APP_NAME": "App display name, used as the reminder prefix (default: nagbox).",
    "NAGBOX_LOG_LEVEL": "Console logging level (default: INFO).",
    # Connectors
    "NAGBOX_CONSOLE_ENABLED": "Enable console connector (true/false, default: true).",
    "NAGBOX_MATRIX_ENABLED": "Enable Matrix connector (true/false, default: false).",
    # Matrix
    "NAGBOX_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "NAGBOX_MATRIX_USER_ID": "Matrix user ID (bot).",
    "NAGBOX_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "NAGBOX_MATRIX_ROOMS": "Optional allowlist of room IDs (empty => all rooms).",
    "NAGBOX_MATRIX_NOTIFY_ROOM": "Room that receives reminders (default: first allowed/joined room).",
    # Paths (gitignored)
    "NAGBOX_DATA_DIR": "Local data directory (default: .local/nagbox).",
    "NAGBOX_MATRIX_STORE_PATH": "Directory holding the Matrix session.json (default: <data_dir>/matrix_store).",
    "NAGBOX_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    # Reminders
    "NAGBOX_DEFAULT_INTERVAL_MINUTES": "Interval for /add without minutes (default: 5).",
    "NAGBOX_ALARM_TOLERANCE_SECONDS": "How late a wake-up may be batched (default: 10).",
    "NAGBOX_STARTER_TASKS": "';'-separated titles created with a brand new database.",
}
