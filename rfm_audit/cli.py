"""Command line entry point for the RFM audit."""

from __future__ import annotations

import argparse
import logging
from datetime import date
from pathlib import Path

from rfm_audit.analyses.feasibility import DEFAULT_CORRELATION_THRESHOLD
from rfm_audit.analyses.segmentation import resolve_segment_strategy
from rfm_audit.foundation.transactions import load_transactions
from rfm_audit.pipeline import DEFAULT_CUTOFF_DATE, PipelineConfig, run_pipeline
from rfm_audit.reporting.exports import export_pipeline_result

logger = logging.getLogger(__name__)


MAX_INPUT_BYTES = 200 * 1024 * 1024  # 200 MiB cap to avoid accidental OOM


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid date {value!r}; expected YYYY-MM-DD"
        ) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rfm-audit",
        description=(
            "Build RFM features, assess predictive feasibility and export "
            "customer segments and priority lists"
        ),
    )
    parser.add_argument("input", type=Path, help="Path to the transactions CSV")
    parser.add_argument(
        "--cutoff",
        type=_parse_date,
        default=DEFAULT_CUTOFF_DATE,
        help=f"Cutoff date splitting history from outcomes (default: {DEFAULT_CUTOFF_DATE})",
    )
    parser.add_argument(
        "--segments",
        type=Path,
        help="Optional CSV of customer_id,Segment overriding computed RFM segments",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("output"),
        help="Directory for exported tables (default: ./output)",
    )
    parser.add_argument(
        "--correlation-threshold",
        type=float,
        default=DEFAULT_CORRELATION_THRESHOLD,
        help=(
            "Max absolute correlation below which predictive signal is weak "
            f"(default: {DEFAULT_CORRELATION_THRESHOLD})"
        ),
    )
    parser.add_argument(
        "--no-parallel",
        action="store_true",
        help="Disable process-pool aggregation",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser


def run_audit_cli(argv: list[str] | None = None) -> int:
    """Run the full audit on a transactions CSV and export all outputs.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for fatal data errors)
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    input_path = args.input.resolve()
    if not input_path.is_file():
        logger.error(f"Input file {input_path} does not exist")
        return 1
    size = input_path.stat().st_size
    if size > MAX_INPUT_BYTES:
        logger.error(
            f"Input file {input_path} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
        return 1

    # Resolve segment source before any analysis runs
    try:
        strategy = resolve_segment_strategy(args.segments)
    except ValueError as exc:
        logger.error(str(exc))
        return 1

    try:
        transactions = load_transactions(input_path)
    except ValueError as exc:
        logger.error(str(exc))
        return 1

    config = PipelineConfig(
        cutoff_date=args.cutoff,
        correlation_threshold=args.correlation_threshold,
        parallel=not args.no_parallel,
    )

    try:
        result = run_pipeline(transactions, config=config, segment_strategy=strategy)
    except ValueError as exc:
        logger.error(f"Audit failed: {exc}")
        return 1

    written = export_pipeline_result(result, args.output_dir)

    verdict = result.feasibility
    logger.info(
        f"Feasibility: max |r|={verdict.max_abs_correlation:.4f} "
        f"(threshold {verdict.threshold}) -> {verdict.recommended_path} analytics"
    )
    logger.info(
        f"{result.total_customers} customers: "
        f"{len(result.priority.high_risk_high_value)} high-value at risk, "
        f"{len(result.priority.vip_recent)} VIP recent, "
        f"{len(result.priority.loyal_inactive)} loyal inactive"
    )
    logger.info(f"Wrote {len(written)} files to {args.output_dir}")
    return 0


def main() -> None:
    raise SystemExit(run_audit_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
