"""Nova Assistant - Configuration

Static tables used by the voice client and the assistant service, plus
the loader for runtime settings in assistant.yaml.

Environment overrides (applied after the YAML file):
  OPENAI_API_KEY   LLM key for the assistant service (empty = canned replies)
  LLM_ENDPOINT     OpenAI-compatible chat completions URL
  NOVA_DB_PATH     SQLite file for the assistant service
  NOVA_SERVER_URL  Base URL the voice client talks to
  PORT             Port for the assistant service
"""

import copy
import logging
import os
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

ASSISTANT_NAME = "Nova"

# ---------------------------------------------------------------------------
# Website aliases -- spoken site name -> canonical URL
#
# Kept as (alias, url) pairs so voice.dispatcher.build_alias_table() can
# reject an alias that is listed twice with different URLs.
# ---------------------------------------------------------------------------
ALIAS_PAIRS = [
    # Search, mail, social
    ("google", "https://google.com"),
    ("gmail", "https://gmail.com"),
    ("youtube", "https://youtube.com"),
    ("facebook", "https://facebook.com"),
    ("instagram", "https://instagram.com"),
    ("twitter", "https://twitter.com"),
    ("linkedin", "https://linkedin.com"),
    ("reddit", "https://reddit.com"),
    ("pinterest", "https://pinterest.com"),
    ("tiktok", "https://tiktok.com"),
    ("snapchat", "https://web.snapchat.com"),
    ("tumblr", "https://tumblr.com"),
    ("quora", "https://quora.com"),
    ("yahoo", "https://yahoo.com"),
    ("bing", "https://bing.com"),
    ("msn", "https://msn.com"),
    ("wikipedia", "https://wikipedia.org"),
    # Messaging and work
    ("whatsapp", "https://web.whatsapp.com"),
    ("telegram", "https://web.telegram.org"),
    ("signal", "https://signal.org"),
    ("discord", "https://discord.com"),
    ("skype", "https://web.skype.com"),
    ("zoom", "https://zoom.us"),
    ("slack", "https://slack.com"),
    ("teams", "https://teams.microsoft.com"),
    ("outlook", "https://outlook.live.com"),
    ("office", "https://office.com"),
    ("onedrive", "https://onedrive.live.com"),
    ("dropbox", "https://dropbox.com"),
    ("drive", "https://drive.google.com"),
    ("docs", "https://docs.google.com"),
    ("sheets", "https://sheets.google.com"),
    ("slides", "https://slides.google.com"),
    # Writing
    ("wordpress", "https://wordpress.com"),
    ("blogger", "https://blogger.com"),
    ("medium", "https://medium.com"),
    # Developer
    ("github", "https://github.com"),
    ("gitlab", "https://gitlab.com"),
    ("bitbucket", "https://bitbucket.org"),
    ("stackoverflow", "https://stackoverflow.com"),
    ("docker", "https://hub.docker.com"),
    ("npm", "https://npmjs.com"),
    ("yarn", "https://yarnpkg.com"),
    ("nodejs", "https://nodejs.org"),
    ("python", "https://python.org"),
    ("java", "https://java.com"),
    # Shopping
    ("amazon", "https://amazon.com"),
    ("ebay", "https://ebay.com"),
    # Vendors
    ("oracle", "https://oracle.com"),
    ("microsoft", "https://microsoft.com"),
    ("apple", "https://apple.com"),
    ("samsung", "https://samsung.com"),
    ("xiaomi", "https://mi.com"),
    ("oneplus", "https://oneplus.com"),
    ("oppo", "https://oppo.com"),
    ("vivo", "https://vivo.com"),
    ("realme", "https://realme.com"),
    ("motorola", "https://motorola.com"),
    ("nokia", "https://nokia.com"),
    ("sony", "https://sony.com"),
    ("lg", "https://lg.com"),
    ("asus", "https://asus.com"),
    ("acer", "https://acer.com"),
    ("dell", "https://dell.com"),
    ("hp", "https://hp.com"),
    ("lenovo", "https://lenovo.com"),
    ("msi", "https://msi.com"),
    ("intel", "https://intel.com"),
    ("amd", "https://amd.com"),
    ("nvidia", "https://nvidia.com"),
    ("corsair", "https://corsair.com"),
    ("razer", "https://razer.com"),
    ("logitech", "https://logitech.com"),
    # Games
    ("steam", "https://store.steampowered.com"),
    ("epic games", "https://epicgames.com"),
    ("ubisoft", "https://ubisoft.com"),
    ("ea", "https://ea.com"),
    ("rockstar", "https://rockstargames.com"),
    ("blizzard", "https://blizzard.com"),
    ("battlenet", "https://battle.net"),
    ("origin", "https://origin.com"),
    ("uplay", "https://uplay.ubisoft.com"),
    ("gog", "https://gog.com"),
    ("humble", "https://humblebundle.com"),
    ("itch.io", "https://itch.io"),
    # Streaming video
    ("twitch", "https://twitch.tv"),
    ("youtube gaming", "https://gaming.youtube.com"),
    ("facebook gaming", "https://fb.gg"),
    ("mixer", "https://mixer.com"),
    ("dlive", "https://dlive.tv"),
    ("caffeine", "https://caffeine.tv"),
    ("trovo", "https://trovo.live"),
    ("nimo", "https://nimo.tv"),
    ("afreeca", "https://afreecatv.com"),
    ("netflix", "https://netflix.com"),
    ("imdb", "https://imdb.com"),
    ("vimeo", "https://vimeo.com"),
    ("dailymotion", "https://dailymotion.com"),
    ("viki", "https://viki.com"),
    ("hotstar", "https://hotstar.com"),
    ("voot", "https://voot.com"),
    ("zee5", "https://zee5.com"),
    ("sonyliv", "https://sonyliv.com"),
    ("altbalaji", "https://altbalaji.com"),
    ("erosnow", "https://erosnow.com"),
    ("jio cinema", "https://jiocinema.com"),
    ("mx player", "https://mxplayer.in"),
    ("aha", "https://aha.video"),
    ("disney+", "https://disneyplus.com"),
    ("disney plus", "https://disneyplus.com"),
    ("hbo max", "https://hbomax.com"),
    ("hbo", "https://hbomax.com"),
    ("hulu", "https://hulu.com"),
    ("peacock", "https://peacocktv.com"),
    ("paramount+", "https://paramountplus.com"),
    ("paramount plus", "https://paramountplus.com"),
    ("apple tv", "https://tv.apple.com"),
    ("appletv", "https://tv.apple.com"),
    ("apple tv+", "https://tv.apple.com"),
    ("apple tv plus", "https://tv.apple.com"),
    # Music, radio, audiobooks
    ("spotify", "https://open.spotify.com"),
    ("apple music", "https://music.apple.com"),
    ("youtube music", "https://music.youtube.com"),
    ("yt music", "https://music.youtube.com"),
    ("amazon music", "https://music.amazon.com"),
    ("pandora", "https://pandora.com"),
    ("tidal", "https://tidal.com"),
    ("deezer", "https://deezer.com"),
    ("soundcloud", "https://soundcloud.com"),
    ("bandcamp", "https://bandcamp.com"),
    ("iheartradio", "https://iheart.com"),
    ("iheart", "https://iheart.com"),
    ("iheart radio", "https://iheart.com"),
    ("tunein", "https://tunein.com"),
    ("radio.com", "https://radio.com"),
    ("audacy", "https://audacy.com"),
    ("audible", "https://audible.com"),
    ("audible.com", "https://audible.com"),
    ("audible books", "https://audible.com"),
    ("audible book", "https://audible.com"),
    ("audiobooks", "https://audible.com"),
    ("audiobook", "https://audible.com"),
]

# Tokens that make an unknown "open" target look like a web address
URL_TLDS = (
    "com", "org", "net", "io", "co", "ai", "dev", "me", "tv", "app",
    "store", "shop", "blog", "tech", "online", "site", "website", "live",
    "xyz", "info", "biz", "us", "uk", "ca", "au", "nz", "in", "sg", "my",
    "id", "ph", "th", "vn", "jp", "kr", "cn", "ru", "br", "mx", "ar", "za",
    "ae", "sa", "eg", "ma", "dz", "tn", "ly", "jo", "lb", "ps", "iq", "kw",
    "qa", "bh", "om", "ye", "sy",
)

URL_SCHEMES = ("http://", "https://")

SEARCH_URL = "https://www.google.com/search"

# Names people use when addressing the assistant; stripped from search queries
WAKE_WORDS = ("nova", "shifra", "shipra")

# ---------------------------------------------------------------------------
# Voice client messages
# ---------------------------------------------------------------------------
READY_STATUS = "Ready to listen..."
LISTENING_STATUS = "Listening..."
PROCESSING_STATUS = "Processing..."

# Recognition error kind -> status line
ERROR_STATUS = {
    "no-speech": "No speech detected. Please try again.",
    "audio-capture": "Microphone not available.",
    "permission-denied": "Microphone permission denied.",
    "network": "Speech service unreachable. Please try again.",
    "unsupported": "Voice recognition is not supported on this device.",
    "other": "Voice recognition error. Please try again.",
}

GREETING_REPLY = "Hello sir, what can I help you with?"
IDENTITY_REPLY = f"I am {ASSISTANT_NAME}, your virtual assistant."
TIMER_HELP_REPLY = (
    "I didn't understand the timer duration. "
    "Please say something like 'set a timer for 5 minutes'."
)
WEATHER_REPLY = (
    "I'd need a weather API key to provide current weather information. "
    "You can ask me to search weather information online instead."
)
NEWS_REPLY = (
    "I'd need a news API key to provide current news. "
    "You can ask me to search for latest news online."
)

# Voices tried in order when picking a synthesis voice (substring match)
PREFERRED_VOICES = [
    "Google US English",
    "Microsoft David - English (United States)",
    "English (US)",
]

# ---------------------------------------------------------------------------
# Assistant service responses
# ---------------------------------------------------------------------------
LLM_SYSTEM_PROMPT = (
    f"You are {ASSISTANT_NAME}, a helpful AI assistant. Provide concise, "
    "friendly responses. Keep responses under 2-3 sentences when possible."
)

# Checked in order against the lowercased message; first contained key wins
CANNED_RESPONSES = [
    ("hello", f"Hello! I'm {ASSISTANT_NAME}, your AI assistant. How can I help you today?"),
    ("hey", "Hey there! What can I do for you?"),
    ("how are you", "I'm doing great, thanks for asking! Ready to help you with anything."),
    ("what can you do", "I can help with reminders, answer questions, open websites, "
                        "tell time and date, set timers, and much more!"),
    ("thank you", "You're welcome! Is there anything else I can help with?"),
    ("who made you", "I was created to be your helpful AI assistant!"),
]
DEFAULT_CANNED_RESPONSE = 'I heard you say: "{message}". I\'m here to help! What would you like me to do?'
LLM_FAILURE_RESPONSE = (
    "I'm having trouble processing your request right now. Please try again later."
)

FEATURES = ["voice-commands", "reminders", "ai-responses", "feedback", "preferences"]

# ---------------------------------------------------------------------------
# Runtime settings (overridden by assistant.yaml, then environment)
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: Dict[str, Dict[str, Any]] = {
    "server": {
        "host": "127.0.0.1",
        "port": 3000,
        "db_path": "nova.db",
        "history_limit": 10,
        "max_history_limit": 100,
    },
    "client": {
        "server_url": "http://localhost:3000",
        "timeout": 30,
        "feedback_status_seconds": 5,
    },
    "llm": {
        "api_key": "",
        "endpoint": "https://api.openai.com/v1/chat/completions",
        "model": "gpt-3.5-turbo",
        "max_tokens": 150,
        "temperature": 0.7,
        "timeout": 30,
    },
    "voice": {
        "language": "en-US",
        "auto_speak": True,
        "listen_timeout": 6.0,
        "phrase_time_limit": 15.0,
        "rate": 175,
    },
}

_ENV_OVERRIDES = [
    ("OPENAI_API_KEY", "llm", "api_key", str),
    ("LLM_ENDPOINT", "llm", "endpoint", str),
    ("NOVA_DB_PATH", "server", "db_path", str),
    ("NOVA_SERVER_URL", "client", "server_url", str),
    ("PORT", "server", "port", int),
]


def load_settings(path: str = "assistant.yaml") -> Dict[str, Dict[str, Any]]:
    """Merge DEFAULT_SETTINGS, the YAML file at *path* and the environment.

    A missing or malformed file is not fatal; the defaults are used.
    """
    settings = copy.deepcopy(DEFAULT_SETTINGS)

    loaded = {}
    if path and os.path.exists(path):
        try:
            with open(path) as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Could not read %s: %s", path, exc)
            loaded = {}

    if not isinstance(loaded, dict):
        logger.warning("Ignoring %s: top level must be a mapping", path)
        loaded = {}

    for section, values in loaded.items():
        if section not in settings or not isinstance(values, dict):
            logger.warning("Unknown settings section: %s", section)
            continue
        settings[section].update(values)

    for env_name, section, key, cast in _ENV_OVERRIDES:
        raw = os.environ.get(env_name)
        if not raw:
            continue
        try:
            settings[section][key] = cast(raw)
        except ValueError:
            logger.warning("Ignoring %s=%r: not a valid %s", env_name, raw, cast.__name__)

    return settings
