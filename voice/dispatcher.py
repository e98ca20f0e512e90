"""Command dispatcher -- turns one finalized transcript into one Reply.

Rules are checked in a fixed order against the lowercased transcript and
the first match wins:

    greeting, identity, open, time, date, timer,
    list_reminders, add_reminder, weather, news,
    default (ask the assistant service)

Every branch returns exactly one Reply: one utterance and one display
update. Side effects (opening a browser tab, scheduling a timer, calling
the assistant service) happen inside the matching action only.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import config
from voice.errors import DuplicateAliasError, NetworkError, ParseError
from voice.models import Reply

logger = logging.getLogger(__name__)

UNIT_MS = {
    "second": 1000,
    "minute": 60 * 1000,
    "hour": 60 * 60 * 1000,
}

GREETING_RE = re.compile(r"\b(?:hello|hey)\b")
TIME_RE = re.compile(r"\btime\b")
DATE_RE = re.compile(r"\bdate\b")
TIMER_RE = re.compile(r"set a timer for (\d+) (second|minute|hour)s?\b")
LIST_REMINDERS_RE = re.compile(r"\b(?:my|show|list)\s+reminders\b")
ADD_REMINDER_RE = re.compile(
    r"\b(?:remind me to|add (?:a )?reminder(?: to)?|set a reminder(?: to)?)\s+(.+)"
)
WEATHER_RE = re.compile(r"\bweather\b")
NEWS_RE = re.compile(r"\bnews\b")
URL_RE = re.compile(r"\.(?:%s)(?:$|[./:?#])" % "|".join(re.escape(t) for t in config.URL_TLDS))


def build_alias_table(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Build the alias -> URL map.

    Repeating an alias with the same URL is tolerated (and logged); the
    same alias pointing at two URLs is a data-entry defect and raises
    DuplicateAliasError.
    """
    table: Dict[str, str] = {}
    for alias, url in pairs:
        key = alias.strip().lower()
        if key in table:
            if table[key] != url:
                raise DuplicateAliasError(
                    f"Alias {key!r} maps to both {table[key]} and {url}"
                )
            logger.warning("Duplicate alias ignored: %s", key)
            continue
        table[key] = url
    return table


def looks_like_url(target: str) -> bool:
    return target.startswith(config.URL_SCHEMES) or bool(URL_RE.search(target))


def welcome_message(now: datetime) -> str:
    """Time-of-day greeting spoken when the client starts."""
    if now.hour < 12:
        return (f"Good morning! I'm {config.ASSISTANT_NAME}, your AI assistant. "
                "How can I help you today?")
    if now.hour < 16:
        return "Good afternoon! Ready to assist you with anything?"
    return "Good evening! What can I do for you tonight?"


def _plural(amount: int, unit: str) -> str:
    return f"{amount} {unit}{'s' if amount != 1 else ''}"


def parse_timer(lowered: str) -> Tuple[int, str]:
    """Return (amount, unit) from "set a timer for N <unit>", or raise ParseError."""
    match = TIMER_RE.search(lowered)
    if not match:
        raise ParseError(f"Unrecognised timer command: {lowered!r}")
    amount = int(match.group(1))
    if amount <= 0:
        raise ParseError("Timer duration must be positive")
    return amount, match.group(2)


@dataclass
class CommandRule:
    name: str
    predicate: Callable[[str], bool]
    action: Callable[[str, str], Reply]  # (transcript, lowered)


class CommandDispatcher:
    """Match transcripts against the command rules and run the winner."""

    def __init__(self, client, browser: Callable[[str], object], speaker, display,
                 scheduler, clock: Callable[[], datetime] = datetime.now,
                 aliases: Optional[Dict[str, str]] = None):
        self._client = client
        self._browser = browser
        self._speaker = speaker
        self._display = display
        self._scheduler = scheduler
        self._clock = clock
        self.aliases = aliases if aliases is not None else build_alias_table(config.ALIAS_PAIRS)

        self.rules: List[CommandRule] = [
            CommandRule("greeting", lambda t: bool(GREETING_RE.search(t)), self._greeting),
            CommandRule("identity", lambda t: "who are you" in t, self._identity),
            CommandRule("open", lambda t: "open " in t, self._open),
            CommandRule("time", lambda t: bool(TIME_RE.search(t)), self._time),
            CommandRule("date", lambda t: bool(DATE_RE.search(t)), self._date),
            CommandRule("timer", lambda t: "set a timer" in t, self._timer),
            CommandRule("list_reminders", lambda t: bool(LIST_REMINDERS_RE.search(t)),
                        self._list_reminders),
            CommandRule("add_reminder", lambda t: bool(ADD_REMINDER_RE.search(t)),
                        self._add_reminder),
            CommandRule("weather", lambda t: bool(WEATHER_RE.search(t)), self._weather),
            CommandRule("news", lambda t: bool(NEWS_RE.search(t)), self._news),
        ]

    def match(self, transcript: str) -> Optional[CommandRule]:
        """Return the first rule that matches, or None for the default."""
        lowered = transcript.strip().lower()
        for rule in self.rules:
            if rule.predicate(lowered):
                return rule
        return None

    def dispatch(self, transcript: str) -> Reply:
        transcript = transcript.strip()
        lowered = transcript.lower()
        rule = self.match(transcript)
        name = rule.name if rule else "query"
        logger.info("Dispatch %r -> %s", transcript, name)
        try:
            if rule is None:
                return self._query(transcript, lowered)
            return rule.action(transcript, lowered)
        except Exception as exc:
            logger.exception("Command %s failed: %s", name, exc)
            msg = "Sorry, I encountered an error processing your request."
            return Reply(speech=msg, display=msg, rule=name)

    # ─── Local actions ───

    def _greeting(self, transcript: str, lowered: str) -> Reply:
        return Reply(config.GREETING_REPLY, config.GREETING_REPLY, "greeting")

    def _identity(self, transcript: str, lowered: str) -> Reply:
        return Reply(config.IDENTITY_REPLY, config.IDENTITY_REPLY, "identity")

    def _open(self, transcript: str, lowered: str) -> Reply:
        target = lowered.split("open ", 1)[1].strip().rstrip(".!?").strip()
        if not target:
            msg = "What would you like me to open?"
            return Reply(msg, msg, "open")

        url = self.aliases.get(target)
        if url is None and looks_like_url(target):
            url = target if target.startswith(config.URL_SCHEMES) else f"https://{target}"
        if url is None:
            msg = f"I'm sorry, I don't know how to open {target}."
            return Reply(msg, msg, "open")

        self._browser(url)
        label = target if target in self.aliases else url
        return Reply(f"Opening {label}", f"Opening {label}...", "open", opened_url=url)

    def _time(self, transcript: str, lowered: str) -> Reply:
        msg = f"The time is {self._clock().strftime('%H:%M')}"
        return Reply(msg, msg, "time")

    def _date(self, transcript: str, lowered: str) -> Reply:
        msg = f"Today's date is {self._clock().strftime('%d/%m/%Y')}"
        return Reply(msg, msg, "date")

    def _timer(self, transcript: str, lowered: str) -> Reply:
        try:
            amount, unit = parse_timer(lowered)
        except ParseError as exc:
            logger.info("Timer not set: %s", exc)
            return Reply(config.TIMER_HELP_REPLY, config.TIMER_HELP_REPLY, "timer")

        duration = _plural(amount, unit)
        delay_ms = amount * UNIT_MS[unit]

        def _done():
            self._speaker.speak(f"Your timer for {duration} is up!")
            self._display.append_response("Timer completed!")

        self._scheduler.call_later(delay_ms / 1000.0, _done)
        msg = f"Timer set for {duration}"
        return Reply(msg, msg, "timer")

    def _weather(self, transcript: str, lowered: str) -> Reply:
        return Reply(config.WEATHER_REPLY, config.WEATHER_REPLY, "weather")

    def _news(self, transcript: str, lowered: str) -> Reply:
        return Reply(config.NEWS_REPLY, config.NEWS_REPLY, "news")

    # ─── Remote actions ───

    def _list_reminders(self, transcript: str, lowered: str) -> Reply:
        try:
            reminders = self._client.list_reminders()
        except NetworkError as exc:
            logger.warning("Could not list reminders: %s", exc)
            msg = "I couldn't retrieve your reminders. Please try again later."
            return Reply(msg, msg, "list_reminders")

        if not reminders:
            return Reply("You have no reminders.", "No reminders set.", "list_reminders")
        joined = ", ".join(reminders)
        return Reply(f"Your reminders are: {joined}", f"Your reminders: {joined}",
                     "list_reminders")

    def _add_reminder(self, transcript: str, lowered: str) -> Reply:
        match = ADD_REMINDER_RE.search(lowered)
        text = match.group(1)
        if len(transcript) == len(lowered):
            # Keep the user's casing for what gets stored
            text = transcript[match.start(1):match.end(1)]
        text = text.strip().rstrip(".")

        try:
            self._client.add_reminder(text)
        except NetworkError as exc:
            logger.warning("Could not add reminder: %s", exc)
            msg = "I couldn't save your reminder. Please try again later."
            return Reply(msg, msg, "add_reminder")
        return Reply(f"Reminder added: {text}", f"Reminder set: {text}", "add_reminder")

    def _query(self, transcript: str, lowered: str) -> Reply:
        result = self._client.query(transcript)
        if result.fallback:
            return Reply("I couldn't find an answer. Let me search the internet for you.",
                         result.text, "query", opened_url=result.search_url)
        return Reply(result.text, result.text, "query")
