# src/openai_llm.py
import logging, os, time, random
from typing import Callable, Dict, List, Optional
from openai import OpenAI, APIError, RateLimitError

from src.llm_config import (
    CHAT_MODEL, DEEP_MODEL, REPORT_MODEL, CHAT_TEMPERATURE, REPORT_TEMPERATURE,
)

logger = logging.getLogger(__name__)

EMPTY_REPLY = "No response from the model. Please retry."

ASSISTANT_SYSTEM = """You are the analytics assistant of InsightSphere, reviewing social engagement data.
Current metrics:
{digest}

Rules:
1. Be brief and direct.
2. Use markdown: ### headers for sections, **bold** for key insights and advice,
   `inline code` for metric names and values, tables to compare platforms, bullets for action items.
3. Base every recommendation on the metrics above.
4. {depth}"""

DEEP_HINT = "Deep mode is on: walk through your reasoning step by step before the recommendation."
FAST_HINT = "Keep reasoning implicit; answer in a few lines."

REPORT_SYSTEM = (
    "You are a senior social media strategist writing an analytical briefing. "
    "Be analytical and specific; cite metric names and values. "
    "Format sections with bracketed headers like [SECTION_NAME] so they can be parsed. "
    "The STRATEGIC_RECOMMENDATIONS section must build on the assistant advice provided in the context."
)

LIVE_PROMPT = """Assess the current social media landscape for the keyword: "{keyword}".
Consider recent trends, volume and sentiment volatility.
Return ONLY a comma-separated list of three numbers in this exact order:
Engagement_Score (0-1000), Trend_Multiplier (0.5-5.0), Sentiment_Volatility (0-100).
Example: 450, 1.2, 15"""

_client: Optional[OpenAI] = None
def _get_client(api_key: Optional[str] = None) -> OpenAI:
    global _client
    if api_key:  # explicit key wins
        return OpenAI(api_key=api_key)
    if _client is None:
        key = os.getenv("OPENAI_API_KEY")
        if not key:
            raise RuntimeError("Set OPENAI_API_KEY or pass api_key to openai_llm_call().")
        _client = OpenAI(api_key=key)
    return _client

def openai_llm_call(
    prompt: str,
    *,
    system: str = "",
    model: str = CHAT_MODEL,
    temperature: float = CHAT_TEMPERATURE,
    history: Optional[List[Dict[str, str]]] = None,
    api_key: Optional[str] = None,
) -> str:
    """
    One Chat Completions round trip.
    - history: prior {"role": "user"|"assistant", "content": ...} turns.
    - Retries rate-limit/API errors with backoff, re-raises after the 4th attempt.
    Returns the reply text (EMPTY_REPLY if the model sent nothing).
    """
    client = _get_client(api_key)
    messages = [{"role": "system", "content": system}] if system else []
    messages += [{"role": m["role"], "content": m["content"]} for m in (history or [])]
    messages.append({"role": "user", "content": prompt})

    for attempt in range(4):
        try:
            resp = client.chat.completions.create(
                model=model,
                temperature=temperature,
                messages=messages,
            )
            return resp.choices[0].message.content or EMPTY_REPLY
        except (RateLimitError, APIError) as e:
            if attempt == 3:
                raise
            logger.warning("OpenAI call failed (attempt %d/4): %s", attempt + 1, e)
            time.sleep(1.2 * (2 ** attempt) + random.random() * 0.4)

def ask_assistant(
    query: str,
    digest: str,
    history: Optional[List[Dict[str, str]]] = None,
    *,
    deep: bool = False,
    llm_call_fn: Callable[..., str] = openai_llm_call,
) -> str:
    system = ASSISTANT_SYSTEM.format(digest=digest, depth=DEEP_HINT if deep else FAST_HINT)
    return llm_call_fn(
        query,
        system=system,
        model=DEEP_MODEL if deep else CHAT_MODEL,
        temperature=CHAT_TEMPERATURE,
        history=history or [],
    )

def report_llm_call(prompt: str) -> str:
    """Briefing-report call; plug into briefing.generate_briefing(llm_call_fn=...)."""
    return openai_llm_call(prompt, system=REPORT_SYSTEM, model=REPORT_MODEL,
                           temperature=REPORT_TEMPERATURE)

def fetch_live_context(keyword: str, *, llm_call_fn: Callable[..., str] = openai_llm_call) -> str:
    return llm_call_fn(LIVE_PROMPT.format(keyword=keyword), model=CHAT_MODEL, temperature=0.2)
