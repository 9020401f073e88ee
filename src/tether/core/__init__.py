"""Core — message schema, completion backend, context management and orchestration."""
