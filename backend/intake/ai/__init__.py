"""AI integrations (speech-to-text, completion, text-to-speech)."""
