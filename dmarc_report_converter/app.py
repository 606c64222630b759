import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import structlog
from jinja2 import TemplateError

from dmarc_report_converter.deserialization import parse_report
from dmarc_report_converter.errors import ReportDecodeError
from dmarc_report_converter.logging import (
    LOG_FORMATS,
    configure_logging,
    parse_log_level,
)
from dmarc_report_converter.renderer import (
    DEFAULT_TEMPLATE,
    load_template,
    render_reports,
)
from dmarc_report_converter.report_reader import load_reports
from dmarc_report_converter.serialization import report_to_json

logger = structlog.get_logger()

STDIO = "-"


def _add_logging_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--log-level",
        type=parse_log_level,
        default=logging.INFO,
        help="Log level (debug, info, warning, error, critical)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default="plain",
        help="Format of log messages written to stderr",
    )


def _write_output(destination: str, content: str):
    if destination == STDIO:
        sys.stdout.write(content)
        sys.stdout.flush()
    else:
        Path(destination).write_text(content, encoding="utf-8")


def report2json_main(argv: Sequence[str]) -> int:
    parser = argparse.ArgumentParser(
        description="Convert a DMARC aggregate report from XML to JSON."
    )
    parser.add_argument(
        "input",
        nargs="?",
        default=STDIO,
        help="XML report to convert, '-' reads from stdin",
    )
    parser.add_argument(
        "-o",
        "--output",
        default=STDIO,
        help="Destination of the JSON document, '-' writes to stdout",
    )
    _add_logging_arguments(parser)
    args = parser.parse_args(argv)
    configure_logging(log_level=args.log_level, log_format=args.log_format)

    try:
        if args.input == STDIO:
            document = sys.stdin.buffer.read()
        else:
            document = Path(args.input).read_bytes()
        feedback = parse_report(document)
        _write_output(args.output, json.dumps(report_to_json(feedback)))
    except ReportDecodeError as err:
        logger.error("Failed to decode report.", input=args.input, error=str(err))
        return 1
    except OSError as err:
        logger.error(
            "Failed to convert report.",
            input=args.input,
            output=args.output,
            error=str(err),
        )
        return 1
    return 0


def reports2html_main(argv: Sequence[str]) -> int:
    parser = argparse.ArgumentParser(
        description="Render a directory of DMARC aggregate reports to HTML."
    )
    parser.add_argument(
        "-t",
        "--template",
        type=Path,
        default=DEFAULT_TEMPLATE,
        help="Path to the Jinja2 template file",
    )
    parser.add_argument(
        "-r",
        "--reports",
        type=Path,
        default=Path("./"),
        help="Path to the directory with DMARC XML reports",
    )
    parser.add_argument(
        "-o",
        "--output",
        default="./report.html",
        help="Path to the rendered HTML report",
    )
    _add_logging_arguments(parser)
    args = parser.parse_args(argv)
    configure_logging(log_level=args.log_level, log_format=args.log_format)

    try:
        logger.info("Loading template.", path=str(args.template))
        template = load_template(args.template)
        logger.info("Loading reports.", path=str(args.reports))
        batch = load_reports(args.reports)
        logger.info("Rendering reports.", path=args.output)
        _write_output(args.output, render_reports(template, batch.reports))
    except TemplateError as err:
        logger.error(
            "Failed to render template.", path=str(args.template), error=str(err)
        )
        return 1
    except OSError as err:
        logger.error("Failed to render reports.", error=str(err))
        return 1

    if batch.failures:
        logger.error(
            "Some reports could not be loaded.",
            paths=[str(path) for path, _ in batch.failures],
        )
        return 1
    return 0


def report2json(argv: Optional[Sequence[str]] = None):
    sys.exit(report2json_main(sys.argv[1:] if argv is None else argv))


def reports2html(argv: Optional[Sequence[str]] = None):
    sys.exit(reports2html_main(sys.argv[1:] if argv is None else argv))
