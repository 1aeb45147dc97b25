# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Nothing here is secret: session auth is an HTTP-only cookie issued by the server at /login.

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "TEAMTASK_APP_NAME": "App display name (default: Team Task Manager).",
    "TEAMTASK_APP_VERSION": "Version string shown at startup (default: 1.0.0).",
    "TEAMTASK_LOG_LEVEL": "Console logging level (default: INFO).",
    "TEAMTASK_DEBUG_MODE": "Log resolved settings at startup (true/false).",
    # API
    "TEAMTASK_API_BASE_URL": "Backend base URL (default: http://localhost:5000/api).",
    "TEAMTASK_API_TIMEOUT_SECONDS": "Request timeout in seconds (default: 30).",
    "TEAMTASK_SESSION_COOKIE_NAME": "Name of the server's session cookie (default: sessionId).",
    # Feature flags
    "TEAMTASK_ENABLE_DARK_MODE": "Allow the dark theme; off pins the theme to light (default: true).",
    "TEAMTASK_ENABLE_DUE_DATE_REMINDERS": "Warn about overdue tasks after /tasks (default: true).",
    # UI tuning
    "TEAMTASK_NOTIFICATION_TTL_SECONDS": "Auto-dismiss delay for notifications; 0 disables (default: 5).",
    "TEAMTASK_DUE_SOON_DAYS": "Window for 'due soon' (default: 3).",
    # Paths (gitignored)
    "TEAMTASK_DATA_DIR": "Local data directory (default: .local/teamtask).",
    "TEAMTASK_STATE_PATH": "Durable state JSON path (default: <data_dir>/state.json).",
}
