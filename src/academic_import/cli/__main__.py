from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..api.client import ApiClient, SubmissionTransportError
from ..config.loader import ConfigError, ImportConfig, build_schema, load_config
from ..excel.reader import read_workbook_path
from ..excel.template import generate_template
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import get_logger, log_summary, set_debug, setup_logging
from ..models.errors import ImportFailure
from ..models.submission import SubmissionStatus
from ..models.target_schema import TargetSchema
from ..models.validation_result import BatchValidationResult, summarize_errors
from ..services.batch_validator import validate
from ..services.import_session import ImportSession, MissingContextError, SessionStateError
from ..services.progress import ProgressTracker
from ..services.summary import render_submission_summary, render_validation_summary

"""CLI entrypoint.

    academic-import [--config PATH] [--debug] check KIND FILE...
    academic-import [--config PATH] [--debug] template KIND OUTPUT [--id ID ...]
    academic-import [--config PATH] [--debug] submit KIND FILE [--context key=value ...]

Exit codes:
    0  every row accepted (and, for submit, every record created)
    2  some rows rejected / truncated, or some records failed server-side
    1  fatal: config, unreadable or empty file, missing column, transport error
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

DEFAULT_CONFIG_PATH = "config/import.yml"


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _context_pair(text: str) -> tuple[str, Any]:
    key, sep, value = text.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected key=value, got '{text}'")
    value = value.strip()
    # ID 類は数値で送る
    return key.strip(), int(value) if value.isdigit() else value


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="academic-import", description="Spreadsheet bulk import for the academic console"
    )
    p.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config YAML")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Validate spreadsheets without submitting")
    check.add_argument("kind")
    check.add_argument("files", nargs="+", type=Path)

    template = sub.add_parser("template", help="Write an import template workbook")
    template.add_argument("kind")
    template.add_argument("output", type=Path)
    template.add_argument(
        "--id", dest="ids", action="append", default=None, help="Known identifier (repeatable)"
    )

    submit = sub.add_parser("submit", help="Validate a spreadsheet and submit accepted rows")
    submit.add_argument("kind")
    submit.add_argument("file", type=Path)
    submit.add_argument(
        "--context",
        action="append",
        type=_context_pair,
        default=[],
        help="Batch field sent with the request, e.g. departmentId=3 (repeatable)",
    )
    return p.parse_args(argv)


def _report_validation(file_name: str, result: BatchValidationResult) -> int:
    logger = get_logger()
    for message in result.display_errors():
        logger.warning(message)
    if result.ignored_headers:
        logger.info(f"ignored columns: {', '.join(result.ignored_headers)}")
    log_summary(render_validation_summary(file_name, result)[len("SUMMARY "):])
    if result.rejected or result.truncated_rows:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _check(schema: TargetSchema, files: list[Path], error_log: ErrorLogBuffer) -> int:
    logger = get_logger()
    fatal = partial = False
    with ProgressTracker(len(files)) as progress:
        for path in files:
            progress.start_file(path)
            try:
                table = read_workbook_path(path)
                result = validate(table, schema)
            except ImportFailure as e:
                logger.error(f"file={path.name} {e.kind.value}: {e}")
                error_log.record_failure(path.name, schema.kind, e.kind, e.message)
                fatal = fatal or e.kind.fatal
                progress.finish_file(success=False)
                continue
            error_log.record_validation(path.name, schema.kind, result)
            if result.fatal:
                for message in result.batch_errors:
                    logger.error(f"file={path.name} {message}")
                fatal = True
            elif _report_validation(path.name, result) != EXIT_SUCCESS_ALL:
                partial = True
            progress.finish_file(success=not result.fatal)
    if fatal:
        return EXIT_FATAL
    return EXIT_PARTIAL_FAILURE if partial else EXIT_SUCCESS_ALL


def _template(schema: TargetSchema, output: Path, ids: list[str] | None) -> int:
    logger = get_logger()
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(generate_template(schema, ids))
    except OSError as e:
        logger.error(f"template: cannot write {output}: {e}")
        return EXIT_FATAL
    logger.info(f"template kind={schema.kind} columns={len(schema.fields)} written to {output}")
    return EXIT_SUCCESS_ALL


def _submit(
    schema: TargetSchema,
    cfg: ImportConfig,
    path: Path,
    context: dict[str, Any],
    error_log: ErrorLogBuffer,
) -> int:
    logger = get_logger()
    if not cfg.api.base_url:
        logger.error("submit: api.base_url is not configured (config or ACADEMIC_IMPORT_API_URL)")
        return EXIT_FATAL
    client = ApiClient(cfg.api.base_url, cfg.api.token, cfg.api.timeout_seconds)
    session = ImportSession(schema, client=client, error_log=error_log)

    try:
        content = path.read_bytes()
    except OSError as e:
        logger.error(f"file={path.name} cannot read file: {e}")
        return EXIT_FATAL
    try:
        result = session.load(content, path.name)
    except ImportFailure as e:
        logger.error(f"file={path.name} {e.kind.value}: {e}")
        return EXIT_FATAL

    validation_status = _report_validation(path.name, result)
    if not result.accepted:
        logger.error(f"file={path.name} no accepted rows to submit")
        return EXIT_PARTIAL_FAILURE

    session.set_context(**context)
    try:
        outcome = session.submit()
    except MissingContextError as e:
        logger.error(f"submit: {e} (use --context key=value)")
        return EXIT_FATAL
    except (SubmissionTransportError, SessionStateError) as e:
        logger.error(f"submit: {e}")
        return EXIT_FATAL

    for message in summarize_errors(outcome.error_messages(), schema.error_display_cap):
        logger.warning(message)
    log_summary(render_submission_summary(outcome)[len("SUMMARY "):])
    if outcome.status is not SubmissionStatus.SUCCESS:
        return EXIT_PARTIAL_FAILURE
    return validation_status


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む (テストから main([...]) で呼ぶため)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(Path(args.config))
        schema = build_schema(args.kind, cfg)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer(Path(cfg.logs_directory))
    try:
        if args.command == "check":
            return _check(schema, args.files, error_log)
        if args.command == "template":
            return _template(schema, args.output, args.ids)
        return _submit(schema, cfg, args.file, dict(args.context), error_log)
    finally:
        written = error_log.flush()
        if written is not None:
            logger.info(f"error log written to {written}")


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
