"""Voice client -- speech adapters, command dispatch and session state.

Local responsibilities:
    - Speech capture and transcription (speech_recognition)
    - Speech synthesis (pyttsx3)
    - Hardcoded commands: greeting, identity, open website, time, date,
      timers, reminders

Remote (assistant service) responsibilities:
    - Open-ended questions (language model or canned replies)
    - Reminders, feedback, history and preferences storage

Everything the adapters produce travels over core.EventBus and is
handled on the client's main loop.
"""

from voice.assistant import VoiceAssistant

__all__ = ["VoiceAssistant"]
