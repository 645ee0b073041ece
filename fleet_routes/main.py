from datetime import datetime
import logging
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from .config import (
    INPUT_FILE,
    LOG_LEVEL,
    OUTPUT_FILE,
    OUTPUT_FILE_TIMESTAMP_ENABLED,
    ROUTE_MAP_DIR,
)
from .errors import ReportWriteError, RunDataFormatError
from .excel_writer import write_route_report
from .models import Driver, Run, RunStatus
from .run_reader import read_run_records
from .services import RouteService, RouteView
from .visualization import create_route_map


def _setup_logging() -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, LOG_LEVEL, logging.INFO),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _resolve_output_path() -> str:
    if OUTPUT_FILE_TIMESTAMP_ENABLED:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return f"{OUTPUT_FILE}_{timestamp}.xlsx"
    return f"{OUTPUT_FILE}.xlsx"


def _load_inputs() -> Tuple[List[Run], Dict[str, Driver]]:
    logging.info("Loading run records from %s ...", INPUT_FILE)
    runs, drivers = read_run_records(INPUT_FILE)
    in_progress = sum(1 for r in runs if r.status is RunStatus.IN_PROGRESS)
    logging.info(
        "Loaded %d runs (%d in progress) for %d drivers",
        len(runs),
        in_progress,
        len(drivers),
    )
    return runs, drivers


def _write_maps(views: Sequence[RouteView], map_dir: str) -> int:
    written = 0
    for view in views:
        target = Path(map_dir) / f"{view.title}.html"
        try:
            create_route_map(view, output_html_path=target)
        except ValueError as exc:
            logging.warning("Skipping map for %s: %s", view.title, exc)
            continue
        written += 1
    return written


def main() -> None:
    _setup_logging()
    output_file = _resolve_output_path()

    try:
        runs, drivers = _load_inputs()
    except (RunDataFormatError, FileNotFoundError) as exc:
        logging.error("Failed to load run records '%s': %s", INPUT_FILE, exc)
        return

    views = RouteService().views_for_runs(runs, drivers)
    history_runs = [r for r in runs if r.status is RunStatus.COMPLETED]

    try:
        write_route_report(output_file, views, history_runs=history_runs)
    except ReportWriteError as exc:
        logging.error("%s", exc)
        return
    logging.info(
        "Route report saved to %s (journeys=%d, completed runs=%d)",
        output_file,
        len(views),
        len(history_runs),
    )

    if ROUTE_MAP_DIR:
        written = _write_maps(views, ROUTE_MAP_DIR)
        logging.info("Wrote %d route maps to %s", written, ROUTE_MAP_DIR)
