# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "AURA_APP_NAME": "App display name (default: aura).",
    "AURA_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors
    "AURA_CONSOLE_ENABLED": "Run the console REPL (true/false, default: true).",
    # AI backend (OpenAI-compatible, OpenRouter by default)
    "AURA_API_KEY": "API key. OPENROUTER_API_KEY is accepted too. Empty => offline demo AI.",
    "AURA_API_BASE_URL": "Base URL (default: https://openrouter.ai/api/v1).",
    "AURA_AI_MODELS": "Comma/space separated list of models to try in order.",
    "AURA_HTTP_REFERER": "Optional OpenRouter metadata header.",
    "AURA_APP_TITLE": "Optional OpenRouter metadata header title (default: app name).",
    "AURA_AI_FIRST_TOKEN_TIMEOUT_SECONDS": "Skip a model that sends no content for this long (default: 30).",
    "AURA_AI_READ_TIMEOUT_SECONDS": "HTTP read timeout (default: 60).",
    "AURA_AI_CONNECT_TIMEOUT_SECONDS": "HTTP connect timeout (default: 5).",
    # Scheduling
    "AURA_SERIALIZE_BATCHES": (
        "Run analysis batches one at a time (true/false, default: false). "
        "When off, two overlapping analyses may store tasks that conflict."
    ),
    # Paths (gitignored)
    "AURA_DATA_DIR": "Local data directory for the database and aura.log (default: .local/aura).",
    "AURA_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
}

EXAMPLE_DOTENV = """
AURA_API_KEY=sk-or-...
AURA_AI_MODELS=google/gemini-2.5-flash openai/gpt-4o-mini
AURA_LOG_LEVEL=INFO
""".strip()
