"""
Command-line interface for medrisk.
Fetches patients from the DemoMed API, scores them, and (optionally) submits
the assessment.
"""

import json
import logging
import pathlib
import sys
import typing

import click
from stairval.notepad import create_notepad

from .classifier import classify_all
from .client import DemoMedClient
from .config import ClientConfig
from .pagination import DEFAULT_MAX_PAGES
from .patient import PatientRecord
from .report import AssessmentReport, build_report
from .requester import RetrievalError

logger = logging.getLogger(__name__)


def _connection_options(command):
    # shared by every command that talks to the API
    options = [
        click.option(
            "--api-key",
            envvar="DEMO_MED_API_KEY",
            default=None,
            help="API key sent as x-api-key (default: $DEMO_MED_API_KEY)",
        ),
        click.option("--base-url", default=None, help="API root (default: $DEMO_MED_BASE_URL or the public service)"),
        click.option("--limit", "page_limit", type=int, default=None, help="patients per page (default: 20)"),
        click.option("--max-retries", type=int, default=None, help="rate-limit retry budget (default: 5)"),
        click.option(
            "--max-pages",
            type=click.IntRange(min=1),
            default=DEFAULT_MAX_PAGES,
            show_default=True,
            help="stop after this many pages",
        ),
        click.option("--verbose-logging", is_flag=True, help="Also emit debug logs to stderr"),
        click.option(
            "--log-file-path",
            type=click.Path(dir_okay=False, writable=True),
            help="Append timestamped logs to this file",
        ),
    ]
    for option in reversed(options):
        command = option(command)
    return command


@click.group()
def main():
    """medrisk: DemoMed patient risk assessment."""
    pass


@main.command(name="assess")
@_connection_options
@click.option("--submit/--no-submit", default=False, help="POST the assessment (default: dry run)")
@click.option(
    "-o",
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, writable=True),
    help="also write the assessment payload to this JSON file",
)
def assess(
    api_key: typing.Optional[str],
    base_url: typing.Optional[str],
    page_limit: typing.Optional[int],
    max_retries: typing.Optional[int],
    max_pages: int,
    verbose_logging: bool,
    log_file_path: typing.Optional[str],
    submit: bool,
    output_path: typing.Optional[str],
):
    """
    Fetch every patient page, score each patient, and build the three lists:
      - high risk (total score ≥ 4)
      - fever (temperature ≥ 99.6°F)
      - data quality issues (any unusable field)
    """
    _configure_logging(verbose_logging, log_file_path)
    client = _build_client(api_key, base_url, page_limit, max_retries, max_pages)

    patients = _fetch_or_exit(client)
    click.echo(f"Fetched {len(patients)} patients")

    notepad = create_notepad("assessment")
    results, registry = classify_all(patients, notepad)
    report = build_report(results, registry)

    _report_issues(notepad)
    _echo_report(report)
    if output_path:
        _write_json(pathlib.Path(output_path), report.to_payload())
        click.echo(f"Saved assessment to {output_path}")

    if not submit:
        click.echo("Dry run: assessment not submitted (use --submit to send it)")
        return

    try:
        response = client.submit_assessment(report)
    except RetrievalError as e:
        logger.error("Submission failed: %s", e)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo("Server response:")
    click.echo(json.dumps(response, indent=2))


@main.command(name="fetch")
@_connection_options
@click.option(
    "-o",
    "--output",
    "output_path",
    required=True,
    type=click.Path(dir_okay=False, writable=True),
    help="where to save the patient list as JSON",
)
def fetch(
    api_key: typing.Optional[str],
    base_url: typing.Optional[str],
    page_limit: typing.Optional[int],
    max_retries: typing.Optional[int],
    max_pages: int,
    verbose_logging: bool,
    log_file_path: typing.Optional[str],
    output_path: str,
):
    """
    Download every patient page and save the raw records for offline scoring.
    """
    _configure_logging(verbose_logging, log_file_path)
    client = _build_client(api_key, base_url, page_limit, max_retries, max_pages)
    patients = _fetch_or_exit(client)
    _write_json(pathlib.Path(output_path), [p.to_payload() for p in patients])
    click.echo(f"Saved {len(patients)} patients to {output_path}")


@main.command(name="score")
@click.argument("patients_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--verbose", is_flag=True, help="Show every data quality warning")
def score(patients_path: str, verbose: bool):
    """
    Score a saved patient list (as written by `medrisk fetch`) without touching the network.
    """
    patients = _load_patients(pathlib.Path(patients_path))
    notepad = create_notepad("assessment")
    results, registry = classify_all(patients, notepad)
    report = build_report(results, registry)
    if verbose:
        _report_issues(notepad)
    _echo_report(report)


def _configure_logging(verbose_logging: bool, log_file_path: typing.Optional[str]) -> None:
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose_logging:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose_logging else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
        )


def _build_client(
    api_key: typing.Optional[str],
    base_url: typing.Optional[str],
    page_limit: typing.Optional[int],
    max_retries: typing.Optional[int],
    max_pages: int,
) -> DemoMedClient:
    # CLI options win over the environment
    try:
        env = ClientConfig.from_env()
        config = ClientConfig(
            api_key=api_key if api_key is not None else env.api_key,
            base_url=base_url or env.base_url,
            page_limit=page_limit if page_limit is not None else env.page_limit,
            max_retries=max_retries if max_retries is not None else env.max_retries,
            timeout=env.timeout,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if not config.api_key:
        logger.warning("No API key configured; the service will likely reject requests")
    return DemoMedClient(config, max_pages=max_pages)


def _fetch_or_exit(client: DemoMedClient) -> list[PatientRecord]:
    try:
        return client.fetch_all_patients()
    except RetrievalError as e:
        logger.error("Collection aborted: %s", e)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _load_patients(path: pathlib.Path) -> list[PatientRecord]:
    # accepts a bare list or a saved page ({"data": [...]} / {"patients": [...]})
    with open(path, "r", encoding="utf-8") as in_f:
        try:
            payload = json.load(in_f)
        except json.JSONDecodeError as e:
            click.echo(f"Error: {path} is not valid JSON: {e}", err=True)
            sys.exit(1)
    if isinstance(payload, dict):
        payload = payload.get("data") or payload.get("patients") or []
    if not isinstance(payload, list):
        click.echo(f"Error: {path} does not contain a patient list", err=True)
        sys.exit(1)
    return [PatientRecord.from_payload(entry) for entry in payload if isinstance(entry, dict)]


def _write_json(path: pathlib.Path, payload: typing.Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as out_f:
        json.dump(payload, out_f, indent=2)


def _report_issues(notepad):
    # data quality problems never stop the run; show them
    if notepad.has_warnings(include_subsections=True):
        click.echo("Data quality issues found:")
        for w in notepad.warnings():
            click.echo(f"- {w.message}")


def _echo_report(report: AssessmentReport) -> None:
    for key, count in report.counts().items():
        click.echo(f"{key}: {count}")
    click.echo(json.dumps(report.to_payload(), indent=2))


if __name__ == "__main__":
    main()
