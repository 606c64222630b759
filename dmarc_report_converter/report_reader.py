from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple, Union

import structlog

from dmarc_report_converter.deserialization import parse_report
from dmarc_report_converter.errors import ReportDecodeError
from dmarc_report_converter.feedback import Feedback

logger = structlog.get_logger()

REPORT_FILE_SUFFIX = ".xml"


@dataclass
class ReportBatch:
    reports: List[Feedback] = field(default_factory=list)
    failures: List[Tuple[Path, Exception]] = field(default_factory=list)


def find_report_files(directory: Union[str, Path]) -> List[Path]:
    return sorted(
        path
        for path in Path(directory).iterdir()
        if path.is_file() and path.suffix.lower() == REPORT_FILE_SUFFIX
    )


def load_reports(directory: Union[str, Path]) -> ReportBatch:
    """Decode every report file of a directory.

    A file that cannot be read or decoded is logged and skipped, so that one
    broken report does not prevent processing the others. Failing to list
    the directory itself raises an :class:`OSError`.
    """
    batch = ReportBatch()
    for path in find_report_files(directory):
        try:
            batch.reports.append(parse_report(path.read_bytes()))
        except (OSError, ReportDecodeError) as err:
            logger.warning(
                "Skipping report that could not be loaded.",
                path=str(path),
                error=str(err),
            )
            batch.failures.append((path, err))
    logger.info(
        "Loaded reports.",
        directory=str(directory),
        count=len(batch.reports),
        skipped=len(batch.failures),
    )
    return batch
