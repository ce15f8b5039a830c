# src/briefing.py
from __future__ import annotations
import json, logging, re
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from src.data_prep import CanonicalRecord
from src.live import StreamPacket
from src.metrics import NTSResult

logger = logging.getLogger(__name__)

DEFAULT_SECTION = "general"
REPORT_SECTIONS = [
    "EXECUTIVE_SUMMARY",
    "KEY_INSIGHTS",
    "STRATEGIC_RECOMMENDATIONS",
    "PERFORMANCE_MATRIX",
    "NEURAL_FORECAST",
]
# module name -> (section key, heading); logs is built from the chat history instead
MODULES = {
    "summary": ("EXECUTIVE_SUMMARY", "Executive Summary"),
    "insights": ("KEY_INSIGHTS", "Key Insights"),
    "recommendations": ("STRATEGIC_RECOMMENDATIONS", "Strategic Recommendations"),
    "matrix": ("PERFORMANCE_MATRIX", "Performance Matrix"),
    "forecast": ("NEURAL_FORECAST", "Engagement Forecast"),
    "logs": (None, "Communication Log"),
}

_MARKER = re.compile(r"\[([A-Z_]+)\]")
NO_ADVICE = "No assistant guidance yet."
LOG_MESSAGES = 10
LOG_WIDTH = 300

# ----------------------------
# Prompting
# ----------------------------
PROMPT_HEADER = """Generate an engagement intelligence briefing.

CORE DATA:
- Neural Time Sync (NTS) stats: {nts}
- Records in view: {count}
- Recent records: {recent}

ASSISTANT'S LATEST ADVICE:
{advice}

REQUIRED STRUCTURE (use these exact bracketed headers):
1. [EXECUTIVE_SUMMARY]: Synthesis of posting-window efficiency vs the actual engagement trajectory.
2. [KEY_INSIGHTS]: Exactly the TOP 3 trends, each backed by specific data points from the records.
3. [STRATEGIC_RECOMMENDATIONS]: 3 high-impact actions derived from the assistant's advice above.
4. [PERFORMANCE_MATRIX]: Platform/sector synergies and cross-channel resonance.
5. [NEURAL_FORECAST]: A 30-day projection based on the current trend and the NTS lift.
"""

def latest_advice(chat_history: Iterable[Dict[str, str]], n: int = 5) -> str:
    replies = [m["content"] for m in chat_history if m.get("role") == "assistant"]
    return "\n---\n".join(replies[-n:]) if replies else ""

def build_report_prompt(
    records: Sequence[CanonicalRecord],
    nts: NTSResult,
    chat_history: Iterable[Dict[str, str]] = (),
    *,
    recent: int = 20,
) -> str:
    if recent < 0:
        raise ValueError(f"recent must be >= 0, got {recent}")
    tail = list(records)[-recent:] if recent else []
    return PROMPT_HEADER.format(
        nts=json.dumps(nts.to_dict()),
        count=len(records),
        recent=json.dumps([r.to_dict() for r in tail]),
        advice=latest_advice(chat_history) or NO_ADVICE,
    )

# ----------------------------
# Parsing
# ----------------------------
def split_sections(text: str) -> Dict[str, str]:
    """
    Split a reply on [SECTION_NAME] markers into {name: trimmed body}.
    Text before the first marker is dropped; a reply without markers
    becomes a single DEFAULT_SECTION entry.
    """
    text = text or ""
    if not text.strip():
        return {}
    marks = list(_MARKER.finditer(text))
    if not marks:
        return {DEFAULT_SECTION: text.strip()}
    sections: Dict[str, str] = {}
    for m, nxt in zip(marks, marks[1:] + [None]):
        end = nxt.start() if nxt is not None else len(text)
        sections[m.group(1)] = text[m.end():end].strip()
    return sections

def generate_briefing(
    records: Sequence[CanonicalRecord],
    nts: NTSResult,
    chat_history: Iterable[Dict[str, str]] = (),
    *,
    llm_call_fn: Callable[[str], str],  # e.g. openai_llm.report_llm_call
    recent: int = 20,
) -> Dict[str, str]:
    prompt = build_report_prompt(records, nts, chat_history, recent=recent)
    raw = llm_call_fn(prompt)
    sections = split_sections(raw)
    missing = [s for s in REPORT_SECTIONS if s not in sections]
    if missing:
        logger.info("Briefing reply missing sections: %s", missing)
    return sections

# ----------------------------
# Export
# ----------------------------
def strip_markdown(text: str) -> str:
    """Drop ### headers, ** bold and backticks, the way the log module shows replies."""
    return (text or "").replace("###", "").replace("**", "").replace("`", "")

def render_log(
    chat_history: Iterable[Dict[str, str]] = (),
    packets: Sequence[StreamPacket] = (),
    *,
    last: int = LOG_MESSAGES,
    width: int = LOG_WIDTH,
) -> str:
    """
    Plain-text transcript of the last `last` chat messages (markdown stripped,
    each cut to `width` chars), followed by the stream packet log if any.
    """
    lines = []
    for m in list(chat_history)[-last:] if last else []:
        body = " ".join(strip_markdown(m.get("content", "")).split())[:width]
        lines.append(f"- **{m.get('role', 'user').upper()}**: {body}")
    if packets:
        if lines:
            lines.append("")
        lines.append("| Packet | Time | Topic | Engagement | Status |")
        lines.append("| --- | --- | --- | --- | --- |")
        for p in packets:
            lines.append(f"| {p.id} | {p.timestamp:%H:%M:%S} | {p.topic} | {p.engagement:.0f} | {p.status} |")
    return "\n".join(lines)

def render_briefing_markdown(
    sections: Dict[str, str],
    *,
    title: str = "InsightSphere Briefing",
    note: Optional[str] = None,
    include: Optional[List[str]] = None,
    chat_history: Iterable[Dict[str, str]] = (),
    packets: Sequence[StreamPacket] = (),
) -> str:
    """
    Markdown document from the selected modules (default: all of MODULES).
    The summary falls back to the untitled section when the reply had no markers;
    the logs module renders chat_history and packets instead of a reply section.
    """
    include = list(MODULES) if include is None else include
    unknown = [m for m in include if m not in MODULES]
    if unknown:
        raise ValueError(f"Unknown briefing modules: {unknown}. Known: {list(MODULES)}")

    parts = [f"# {title}"]
    if note:
        parts.append(f"> **Note:** {note.strip()}")
    for mod in include:
        key, heading = MODULES[mod]
        if mod == "logs":
            body = render_log(chat_history, packets)
        else:
            body = sections.get(key)
            if mod == "summary" and not body:
                body = sections.get(DEFAULT_SECTION)
        if body:
            parts.append(f"## {heading}\n\n{body}")
    return "\n\n".join(parts) + "\n"
