from __future__ import annotations

from unittest.mock import patch

import main
from core.event_bus import EventBus
from voice.speech import ConsoleSynthesizer, KeyboardRecognizer


def test_parse_args_defaults() -> None:
    args = main.parse_args([])
    assert args.server is None
    assert args.config == "assistant.yaml"
    assert args.text is False
    assert args.log_level == "INFO"


def test_text_mode_uses_keyboard_and_console() -> None:
    bus = EventBus()
    recognizer, synthesizer = main.build_adapters(bus, {}, text_mode=True)
    synthesizer.close()

    assert isinstance(recognizer, KeyboardRecognizer)
    assert isinstance(synthesizer, ConsoleSynthesizer)


def test_feedback_flag_submits_and_exits(tmp_path) -> None:  # noqa: ANN001
    with patch("main.AssistantClient.submit_feedback", return_value=True) as submit:
        code = main.main(["--feedback", "great", "--config", str(tmp_path / "none.yaml")])

    assert code == 0
    submit.assert_called_once_with("great")
