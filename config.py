import os
import shlex

# ═══════════════════════════════════════════════════════════════
# SHELL
# ═══════════════════════════════════════════════════════════════
PROMPT = os.getenv("PROMPT", "sealos > ")

# Raw JSON instead of tables (toggled per line with --raw)
RAW_OUTPUT = os.getenv("RAW_OUTPUT", "false").lower() == "true"

# ═══════════════════════════════════════════════════════════════
# AI EXTRACTION (Gemini-compatible generateContent endpoint)
# ═══════════════════════════════════════════════════════════════
AI_BASE_URL = os.getenv("AI_BASE_URL", "https://aiproxy.usw.sealos.io")
AI_API_KEY = os.getenv("AI_API_KEY", "")
AI_MODEL = os.getenv("AI_MODEL", "gemini-2.5-flash")
AI_TIMEOUT = float(os.getenv("AI_TIMEOUT", "60"))

# Without a key the AI extractor stays off and the keyword extractor is used
AI_ENABLED = os.getenv("AI_ENABLED", "false").lower() == "true" and AI_API_KEY != ""

AI_TEMPERATURE = float(os.getenv("AI_TEMPERATURE", "0.1"))
AI_MAX_OUTPUT_TOKENS = int(os.getenv("AI_MAX_OUTPUT_TOKENS", "8192"))

# Previous-turn results handed to the extractor are cut to this many chars
SNAPSHOT_CHAR_BUDGET = int(os.getenv("SNAPSHOT_CHAR_BUDGET", "4000"))

# ═══════════════════════════════════════════════════════════════
# RESOURCE QUERY WORKERS
# ═══════════════════════════════════════════════════════════════
WORKER_COMMAND = shlex.split(os.getenv("WORKER_COMMAND", "npm run --silent start:server"))

# Fixed thresholds (seconds)
TASK_TIMEOUT_SECONDS = float(os.getenv("TASK_TIMEOUT_SECONDS", "30"))
KILL_GRACE_SECONDS = float(os.getenv("KILL_GRACE_SECONDS", "3"))
INTERRUPT_WINDOW_SECONDS = float(os.getenv("INTERRUPT_WINDOW_SECONDS", "2"))

# Log lines fetched by inspect (--lines overrides per turn)
DEFAULT_LOG_LINES = int(os.getenv("DEFAULT_LOG_LINES", "30"))

# ═══════════════════════════════════════════════════════════════
# LOGGING
# ═══════════════════════════════════════════════════════════════
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
