"""
CLI runner for the engagement engine.

Loads a CSV (or seeded demo data), computes the Neural Time Sync window, the
engagement forecast and the digest, writes charts, and optionally asks the
assistant or generates a sectioned briefing.

Usage:
    python cli_agent.py data.csv --out outputs/
    python cli_agent.py data.csv --platform Instagram --ask "When should we post?"
    python cli_agent.py --seed 7 --report --note "Q3 review"
    python cli_agent.py --live "Global AI Trends"
"""

import argparse
import logging
import os
import sys

import numpy as np
from openai import OpenAIError

from src.briefing import generate_briefing, render_briefing_markdown
from src.data_prep import filter_records, generate_mock_records, load_rows, normalize
from src.forecast import forecast, forecast_frame
from src.live import make_packet, parse_live_metrics, pulse, push_packet, volatility_status
from src.metrics import analyze_sync, summarize, sync_heatmap_table
from src.openai_llm import ask_assistant, fetch_live_context, report_llm_call

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Social engagement analytics: NTS window, forecast, briefing")
    parser.add_argument("csv", nargs="?", help="Engagement CSV with a header row (default: seeded demo data)")
    parser.add_argument("--platform", default="All", help="Only analyze this platform")
    parser.add_argument("--sector", default="All", help="Only analyze this sector")
    parser.add_argument("--sort-by", help="Sort the view on a record field, e.g. date or engagement (default: input order)")
    parser.add_argument("--ascending", action="store_true", help="Sort ascending (default: descending)")
    parser.add_argument("--out", default="outputs", help="Directory for charts and exports (default: outputs)")
    parser.add_argument("--seed", type=int, help="Seed for demo data and forecast noise")
    parser.add_argument("--ask", help="Question for the assistant")
    parser.add_argument("--deep", action="store_true", help="Use the deep-reasoning model for --ask")
    parser.add_argument("--report", action="store_true", help="Generate a briefing (briefing.md)")
    parser.add_argument("--note", help="Note to place at the top of the briefing")
    parser.add_argument("--live", metavar="KEYWORD", help="Pull live context for a keyword and pulse the data")
    parser.add_argument("--no-charts", action="store_true", help="Skip PNG chart export")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def run(args: argparse.Namespace) -> int:
    rng = np.random.default_rng(args.seed)

    if args.csv:
        records = normalize(load_rows(args.csv))
    else:
        records = generate_mock_records(50, rng=rng)
        logger.info("No CSV given; using %d demo records", len(records))

    packets = []
    if args.live:
        metrics = parse_live_metrics(fetch_live_context(args.live))
        records = pulse(records, metrics, rng=rng)
        packet = make_packet(args.live, metrics, rng=rng)
        packets = push_packet(packets, packet)
        logger.info("Live pulse '%s' [%s]: score=%.0f status=%s volatility=%s", args.live, packet.id,
                    metrics.score, packet.status, volatility_status(metrics.volatility))

    view = filter_records(records, platform=args.platform, sector=args.sector,
                          sort_by=args.sort_by, ascending=args.ascending)
    if not view:
        logger.warning("No records match platform=%s sector=%s", args.platform, args.sector)

    nts = analyze_sync(view)
    points = forecast(view, rng=rng)
    digest = summarize(view, nts)
    print(digest)

    os.makedirs(args.out, exist_ok=True)
    forecast_frame(points).to_csv(os.path.join(args.out, "forecast.csv"), index=False)
    if not args.no_charts:
        from src.viz import plot_forecast, plot_sync_heatmap
        if points:
            plot_forecast(points, out_path=os.path.join(args.out, "forecast.png"))
        plot_sync_heatmap(sync_heatmap_table(view), nts, out_path=os.path.join(args.out, "nts_heatmap.png"))
    logger.info("Wrote outputs to %s", args.out)

    history = []
    if args.ask:
        reply = ask_assistant(args.ask, digest, history, deep=args.deep)
        history += [{"role": "user", "content": args.ask}, {"role": "assistant", "content": reply}]
        print("\n" + reply)

    if args.report:
        sections = generate_briefing(view, nts, history, llm_call_fn=report_llm_call)
        path = os.path.join(args.out, "briefing.md")
        with open(path, "w", encoding="utf-8") as f:
            f.write(render_briefing_markdown(sections, note=args.note,
                                             chat_history=history, packets=packets))
        logger.info("Briefing saved to %s", path)
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return run(args)
    except (OpenAIError, RuntimeError) as e:
        logger.exception("Assistant request failed: %s", e)
        return 1
    except (OSError, ValueError) as e:
        logger.exception("Could not process input: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
