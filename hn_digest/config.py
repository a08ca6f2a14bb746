import os
from dotenv import load_dotenv
from pathlib import Path

# Go up one level from hn_digest/ to root/
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Summarizer (OpenAI); the client itself is built lazily in summarize.py
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Delivery: console | telegram
TELEGRAM_TOKEN = os.getenv("TELEGRAM_TOKEN", "")
TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID", "")
SEND_MODE = os.getenv("SEND_MODE", "telegram" if TELEGRAM_TOKEN else "console").lower()

FETCH_TIMEOUT_SECS = float(os.getenv("FETCH_TIMEOUT_SECS", "10"))
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "")
DB_FILE = os.getenv("DB_FILE", "hn_digest.db")

# Articles sent within this many days are not sent again
RECENT_SENT_DAYS = int(os.getenv("RECENT_SENT_DAYS", "7"))

# Seed values for the settings table. Only written when a key is absent;
# after the first run the stored value wins (see settings.SettingsManager.load).
SETTINGS_DEFAULTS = {
    "digest_time": os.getenv("DIGEST_TIME", "09:00"),
    "timezone": os.getenv("TIMEZONE", "UTC"),
    "tag_decay_rate": os.getenv("TAG_DECAY_RATE", "0.02"),
    "min_tag_weight": os.getenv("MIN_TAG_WEIGHT", "0.1"),
    "tag_boost_on_like": os.getenv("TAG_BOOST_ON_LIKE", "0.2"),
    "article_count": os.getenv("ARTICLE_COUNT", "30"),
}
