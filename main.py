#!/usr/bin/env python3
"""Nova -- Voice client entry point.

Listens for a spoken command, handles the built-in ones locally and
sends everything else to the assistant service (web_app.py).

Usage:
    python3 main.py                         # Microphone + speech output
    python3 main.py --text                  # Type commands instead of speaking
    python3 main.py --server http://host:3000
    python3 main.py --feedback "Love it"    # Send feedback and exit
    python3 main.py --log-level DEBUG       # Verbose logging

Controls (voice mode):
    Enter  -- Toggle the microphone
    Ctrl-C -- Quit
"""

__version__ = "1.0.0"

import argparse
import logging
import sys
import threading
import webbrowser

import config
from core.event_bus import EventBus
from core.scheduler import Scheduler
from voice.assistant import VoiceAssistant
from voice.display import ConsoleDisplay
from voice.errors import AdapterError
from voice.models import State
from voice.remote_client import AssistantClient
from voice.speech import (
    ConsoleSynthesizer, KeyboardRecognizer, Pyttsx3Synthesizer, SpeechRecognizer,
)

MIC_TOPIC = "mic"


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Nova -- voice assistant client",
    )
    parser.add_argument(
        "--server", default=None,
        help="Assistant service URL (default from settings: http://localhost:3000)",
    )
    parser.add_argument(
        "--config", default="assistant.yaml",
        help="Path to settings YAML (default: assistant.yaml)",
    )
    parser.add_argument(
        "--text", action="store_true",
        help="Read typed commands and print replies instead of using audio",
    )
    parser.add_argument(
        "--feedback", default=None,
        help="Submit feedback to the assistant service and exit",
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--version", action="version",
        version=f"Nova {__version__}",
    )
    return parser.parse_args(argv)


def setup_logging(level_name: str) -> None:
    """Configure root logger with a consistent format."""
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )


def _watch_enter(bus: EventBus):
    """Publish a mic toggle for every Enter pressed (voice mode)."""
    for _line in sys.stdin:
        bus.publish(MIC_TOPIC, None)


def build_adapters(bus: EventBus, voice: dict, text_mode: bool):
    if text_mode:
        return KeyboardRecognizer(bus), ConsoleSynthesizer(bus)
    recognizer = SpeechRecognizer(
        bus,
        listen_timeout=voice["listen_timeout"],
        phrase_time_limit=voice["phrase_time_limit"],
    )
    synthesizer = Pyttsx3Synthesizer(
        bus, rate=voice["rate"], preferred_voices=config.PREFERRED_VOICES,
    )
    return recognizer, synthesizer


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.log_level)

    logger = logging.getLogger(__name__)
    logger.info("Nova v%s starting", __version__)

    settings = config.load_settings(args.config)
    client_cfg = settings["client"]
    voice = settings["voice"]

    bus = EventBus()
    scheduler = Scheduler(bus)
    display = ConsoleDisplay()
    client = AssistantClient(
        args.server or client_cfg["server_url"],
        browser=webbrowser.open_new_tab,
        scheduler=scheduler,
        display=display,
        timeout=client_cfg["timeout"],
        feedback_status_seconds=client_cfg["feedback_status_seconds"],
    )

    if args.feedback is not None:
        return 0 if client.submit_feedback(args.feedback) else 1

    try:
        recognizer, synthesizer = build_adapters(bus, voice, args.text)
    except AdapterError as exc:
        logger.error("Speech adapters unavailable (%s), try --text", exc)
        return 1

    assistant = VoiceAssistant(
        bus, recognizer, synthesizer, client, display, scheduler,
        browser=webbrowser.open_new_tab,
        preferences={"auto_speak": voice["auto_speak"], "language": voice["language"]},
    )
    assistant.sync_preferences()
    assistant.start()

    if not args.text:
        bus.subscribe(MIC_TOPIC, lambda _payload: assistant.toggle_microphone())
        threading.Thread(target=_watch_enter, args=(bus,), daemon=True, name="mic-key").start()
        print("Press Enter to talk, Ctrl-C to quit.", flush=True)

    try:
        while True:
            if args.text:
                if recognizer.eof:
                    break
                status = assistant.get_status()
                if (assistant.state is State.IDLE and not status["speaking"]
                        and not recognizer.active):
                    assistant.toggle_microphone()
            bus.drain(timeout=0.1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        assistant.close()
        scheduler.close()
        logger.info("Shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
