"""Model names for the assistant, deep-thought mode and briefing reports.

Each can be overridden through the environment; the API key itself is read
lazily by src.openai_llm from OPENAI_API_KEY.
"""
import os

CHAT_MODEL = os.getenv("INSIGHTS_CHAT_MODEL", "gpt-4o-mini")
DEEP_MODEL = os.getenv("INSIGHTS_DEEP_MODEL", "gpt-4o")
REPORT_MODEL = os.getenv("INSIGHTS_REPORT_MODEL", "gpt-4o")

CHAT_TEMPERATURE = 0.7
REPORT_TEMPERATURE = 0.3
