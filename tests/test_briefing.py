import json

import pandas as pd
import pytest

from src.briefing import (
    DEFAULT_SECTION,
    LOG_MESSAGES,
    LOG_WIDTH,
    NO_ADVICE,
    build_report_prompt,
    generate_briefing,
    latest_advice,
    render_briefing_markdown,
    render_log,
    split_sections,
    strip_markdown,
)
from src.data_prep import normalize
from src.live import StreamPacket
from src.metrics import analyze_sync


def test_split_sections_basic():
    assert split_sections("[EXECUTIVE_SUMMARY]Foo[KEY_INSIGHTS]Bar") == {
        "EXECUTIVE_SUMMARY": "Foo",
        "KEY_INSIGHTS": "Bar",
    }


def test_split_sections_trims_and_drops_preamble():
    text = "Sure, here it is.\n[EXECUTIVE_SUMMARY]\n  Line one\nLine two  \n\n[NEURAL_FORECAST]  Up 5%\n"
    assert split_sections(text) == {
        "EXECUTIVE_SUMMARY": "Line one\nLine two",
        "NEURAL_FORECAST": "Up 5%",
    }


def test_split_sections_without_markers():
    assert split_sections("  just prose  ") == {DEFAULT_SECTION: "just prose"}
    assert DEFAULT_SECTION == "general"


def test_split_sections_blank():
    assert split_sections("") == {}
    assert split_sections("   \n") == {}


def test_lowercase_brackets_are_not_markers():
    assert split_sections("[note] hello") == {DEFAULT_SECTION: "[note] hello"}


def test_latest_advice_keeps_last_five_assistant_replies():
    history = [{"role": "user", "content": "q"}]
    history += [{"role": "assistant", "content": f"a{i}"} for i in range(7)]
    assert latest_advice(history) == "\n---\n".join(f"a{i}" for i in range(2, 7))
    assert latest_advice([]) == ""


def test_build_report_prompt(nts_rows):
    records = normalize(nts_rows * 10)
    nts = analyze_sync(records)
    prompt = build_report_prompt(records, nts, [{"role": "assistant", "content": "Post on Mondays."}])
    assert json.dumps(nts.to_dict()) in prompt
    assert "Records in view: 30" in prompt
    assert "Post on Mondays." in prompt
    recent = json.loads(prompt.split("Recent records: ", 1)[1].split("\n", 1)[0])
    assert len(recent) == 20
    assert recent[-1] == records[-1].to_dict()
    for name in ("[EXECUTIVE_SUMMARY]", "[KEY_INSIGHTS]", "[STRATEGIC_RECOMMENDATIONS]",
                 "[PERFORMANCE_MATRIX]", "[NEURAL_FORECAST]"):
        assert name in prompt


def test_build_report_prompt_without_advice(nts_rows):
    records = normalize(nts_rows)
    prompt = build_report_prompt(records, analyze_sync(records))
    assert NO_ADVICE in prompt
    with pytest.raises(ValueError):
        build_report_prompt(records, analyze_sync(records), recent=-1)


def test_generate_briefing_uses_injected_llm(nts_rows):
    records = normalize(nts_rows)
    seen = {}

    def fake_llm(prompt):
        seen["prompt"] = prompt
        return "[EXECUTIVE_SUMMARY] Strong Mondays. [KEY_INSIGHTS] 1. X leads."

    sections = generate_briefing(records, analyze_sync(records), llm_call_fn=fake_llm)
    assert sections == {"EXECUTIVE_SUMMARY": "Strong Mondays.", "KEY_INSIGHTS": "1. X leads."}
    assert "Records in view: 3" in seen["prompt"]


def test_render_briefing_markdown():
    sections = {"EXECUTIVE_SUMMARY": "Sum", "KEY_INSIGHTS": "Ins", "NEURAL_FORECAST": "Up"}
    md = render_briefing_markdown(sections, note="Check Q3", include=["summary", "forecast", "matrix"])
    assert md.startswith("# InsightSphere Briefing")
    assert "> **Note:** Check Q3" in md
    assert "## Executive Summary\n\nSum" in md
    assert "## Engagement Forecast\n\nUp" in md
    assert "Key Insights" not in md
    assert "Performance Matrix" not in md


def test_render_briefing_summary_falls_back_to_general():
    md = render_briefing_markdown({DEFAULT_SECTION: "Raw reply"})
    assert "## Executive Summary\n\nRaw reply" in md


def test_render_briefing_rejects_unknown_module():
    with pytest.raises(ValueError):
        render_briefing_markdown({}, include=["charts"])


def test_strip_markdown():
    assert strip_markdown("### Plan\n**Post** at `09:00`") == " Plan\nPost at 09:00"
    assert strip_markdown(None) == ""


def test_render_log_keeps_last_messages_stripped_and_truncated():
    history = [{"role": "user", "content": f"q{i}"} for i in range(11)]
    history.append({"role": "assistant", "content": "### Answer\n**Bold** `code` " + "x" * 400})
    log = render_log(history)
    lines = log.splitlines()
    assert len(lines) == LOG_MESSAGES
    assert lines[0] == "- **USER**: q2"
    last = lines[-1]
    assert last.startswith("- **ASSISTANT**: Answer Bold code x")
    body = last.split(": ", 1)[1]
    assert len(body) == LOG_WIDTH
    assert "###" not in body and "**" not in body and "`" not in body
    assert render_log([]) == ""


def test_render_log_packet_table():
    packets = [StreamPacket("A1B2C3D4E", pd.Timestamp("2024-01-01 14:05:09", tz="UTC"), "AI", 712.4, "SURGE")]
    log = render_log([{"role": "user", "content": "hi"}], packets)
    assert "- **USER**: hi" in log
    assert "| Packet | Time | Topic | Engagement | Status |" in log
    assert "| A1B2C3D4E | 14:05:09 | AI | 712 | SURGE |" in log


def test_render_briefing_logs_module():
    history = [{"role": "user", "content": "When?"}, {"role": "assistant", "content": "**Mondays**"}]
    md = render_briefing_markdown({"EXECUTIVE_SUMMARY": "Sum"}, chat_history=history)
    assert "## Communication Log\n\n- **USER**: When?\n- **ASSISTANT**: Mondays" in md
    assert md.index("## Executive Summary") < md.index("## Communication Log")
    # nothing to log, no heading
    assert "Communication Log" not in render_briefing_markdown({"EXECUTIVE_SUMMARY": "Sum"})
    only_logs = render_briefing_markdown({"EXECUTIVE_SUMMARY": "Sum"}, include=["logs"], chat_history=history)
    assert "Executive Summary" not in only_logs
