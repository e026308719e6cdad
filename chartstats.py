"""
chartstats.py

Entrypoint for batch chart statistics. Walks a song library, analyses every matching chart and
writes two CSV files: one summary row per chart and one row per side run segment.

Integration
- Loads config (config.py) and applies command line overrides
- Configures logging
- Discovers simfiles (library_index.py) and parses them (sm_store.py)
- Analyses each selected chart (chart_stats.py) on a worker pool, one file per task
- Writes CSV output (report_writer.py) in discovery order
"""

from __future__ import annotations

import argparse
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence

import chart_stats
import config as config_module
import library_index
import paths
import report_writer
import sm_store
from chart_models import ChartDescriptor


logger = logging.getLogger("chartstats")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(log_level: str) -> None:
    logging.basicConfig(level=getattr(logging, str(log_level).upper(), logging.INFO), format=_LOG_FORMAT)


def _chart_is_selected(chart: ChartDescriptor, app_config: config_module.AppConfig) -> bool:
    if chart.chart_type != app_config.input.chart_type:
        return False
    difficulties = app_config.input.difficulties
    return not difficulties or chart.difficulty in difficulties


def process_song(
    simfile_path: Path,
    app_config: config_module.AppConfig,
) -> List[chart_stats.ChartAnalysis]:
    """Analyse every selected chart of one simfile. Failures are logged and yield no rows."""
    logger.info("Processing %s.", simfile_path.name)

    try:
        loaded = sm_store.load_simfile(simfile_path)
    except sm_store.SimfileError as exc:
        logger.warning("Skipping %s: %s", simfile_path, exc)
        return []

    analyses: List[chart_stats.ChartAnalysis] = []
    for chart in loaded.charts:
        if not _chart_is_selected(chart, app_config):
            continue
        try:
            analysis = chart_stats.analyze_chart(
                chart,
                valid_denominators=app_config.analysis.valid_denominators,
            )
        except chart_stats.ChartAnalysisError as exc:
            logger.warning("Skipping %s %s in %s: %s", chart.chart_type, chart.difficulty, simfile_path, exc)
            continue
        if analysis is not None:
            analyses.append(analysis)
    return analyses


def run(app_config: config_module.AppConfig) -> List[chart_stats.ChartAnalysis]:
    candidates = library_index.list_chart_files(
        Path(app_config.input.directory).expanduser(),
        file_name_pattern=app_config.input.file_name_pattern,
        directory_pattern=app_config.input.directory_pattern,
    )
    logger.info("Found %d simfile(s) under %s.", len(candidates), app_config.input.directory)

    with ThreadPoolExecutor(max_workers=int(app_config.analysis.workers), thread_name_prefix="chartstats") as executor:
        per_file_results = list(
            executor.map(lambda candidate: process_song(candidate.simfile_path, app_config), candidates)
        )

    analyses: List[chart_stats.ChartAnalysis] = []
    for file_results in per_file_results:
        analyses.extend(file_results)

    report_writer.write_reports(
        analyses,
        num_inputs=int(sm_store.lane_count_for_step_type(app_config.input.chart_type) or 0),
        valid_denominators=app_config.analysis.valid_denominators,
        stats_path=paths.resolve_output_path(app_config.output.stats_csv),
        steps_per_side_path=paths.resolve_output_path(app_config.output.steps_per_side_csv),
    )
    return analyses


def _apply_argument_overrides(
    app_config: config_module.AppConfig,
    parsed_args: argparse.Namespace,
) -> config_module.AppConfig:
    config_dict = app_config.model_dump()
    if parsed_args.input_dir:
        config_dict["input"]["directory"] = str(parsed_args.input_dir)
    if parsed_args.workers is not None:
        config_dict["analysis"]["workers"] = int(parsed_args.workers)
    if parsed_args.log_level:
        config_dict["log_level"] = str(parsed_args.log_level)
    return config_module.AppConfig.model_validate(config_dict)


def main(argv: Optional[Sequence[str]] = None) -> int:
    argument_parser = argparse.ArgumentParser(description="Per chart rhythm statistics for StepMania simfiles")
    argument_parser.add_argument("--config", type=Path, default=None, help="Path to chartstats_config.json.")
    argument_parser.add_argument("--input-dir", type=Path, default=None, help="Override input.directory.")
    argument_parser.add_argument("--workers", type=int, default=None, help="Override analysis.workers.")
    argument_parser.add_argument("--log-level", default=None, help="Override log_level.")
    parsed_args = argument_parser.parse_args(argv)

    try:
        app_config, _config_path = config_module.load_config(parsed_args.config)
        app_config = _apply_argument_overrides(app_config, parsed_args)
    except Exception as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    configure_logging(app_config.log_level)

    try:
        analyses = run(app_config)
    except FileNotFoundError as exception:
        logger.error("%s", exception)
        return 2

    logger.info("Wrote %d chart row(s).", len(analyses))
    logger.info("Done.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
