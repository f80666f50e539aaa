"""Main entry point for the document generator."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from src import __version__
from src.config.settings import Settings
from src.content.models import JobInfo
from src.generator import (
    GenerateOptions,
    GenerationError,
    GenerationType,
    GeneratorService,
    Preferences,
    RepositoryError,
    create_generator_service,
)
from src.generator.inputs import load_experience, load_personal_info
from src.utils.logging import configure_logging, get_logger

logger = get_logger("cli")


def _print_json(payload: object) -> None:
    def _default(value: object):
        to_dict = getattr(value, "to_dict", None)
        if callable(to_dict):
            return to_dict()
        model_dump = getattr(value, "model_dump", None)
        if callable(model_dump):
            return model_dump(mode="json")
        return str(value)

    print(json.dumps(payload, indent=2, default=_default))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="job-finder-generator",
        description="Generate tailored resumes and cover letters as PDFs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src generate --profile me.yaml --experience exp.yaml \\
      --role "Backend Engineer" --company Acme --type both
  python -m src request job-finder-generator-request-1700000000000-abc123xyz
  python -m src reap
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set the log level (overrides settings)",
    )

    subparsers = parser.add_subparsers(
        dest="mode",
        title="commands",
        description="Available commands",
    )

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate a resume and/or cover letter",
    )
    generate_parser.add_argument(
        "--profile",
        type=Path,
        required=True,
        help="Personal info file (YAML or JSON)",
    )
    generate_parser.add_argument(
        "--experience",
        type=Path,
        default=None,
        help="Experience entries file (YAML or JSON)",
    )
    generate_parser.add_argument("--role", required=True, help="Target job title")
    generate_parser.add_argument("--company", required=True, help="Hiring company")
    generate_parser.add_argument(
        "--description-file",
        type=Path,
        default=None,
        help="Text file with the job description",
    )
    generate_parser.add_argument(
        "--type",
        choices=[t.value for t in GenerationType],
        default=GenerationType.BOTH.value,
        help="Documents to produce (default: both)",
    )
    generate_parser.add_argument(
        "--owner",
        default="local-user",
        help="Owner id recorded on the request",
    )
    generate_parser.add_argument(
        "--emphasize",
        nargs="*",
        default=[],
        help="Skills to prioritize when selecting experience",
    )
    generate_parser.add_argument(
        "--style",
        default=None,
        help="Resume template style (default: the profile's style)",
    )
    generate_parser.add_argument(
        "--idempotency-key",
        default=None,
        help="Resume a failed attempt submitted with the same key",
    )

    request_parser = subparsers.add_parser("request", help="Show a generation request")
    request_parser.add_argument("request_id")

    response_parser = subparsers.add_parser("response", help="Show a generation response")
    response_parser.add_argument("response_id")

    list_parser = subparsers.add_parser("list", help="List an owner's requests")
    list_parser.add_argument("--owner", default="local-user")
    list_parser.add_argument("--limit", type=int, default=20)

    subparsers.add_parser("reap", help="Fail requests whose stage lease expired")

    return parser


def build_options(parsed: argparse.Namespace) -> GenerateOptions:
    """Turn `generate` arguments into GenerateOptions."""
    description = None
    if parsed.description_file is not None:
        description = parsed.description_file.read_text(encoding="utf-8")

    return GenerateOptions(
        generate_type=GenerationType(parsed.type),
        job=JobInfo(
            role=parsed.role,
            company=parsed.company,
            job_description_text=description,
        ),
        personal_info=load_personal_info(parsed.profile),
        experience_entries=load_experience(parsed.experience),
        owner_id=parsed.owner,
        preferences=Preferences(emphasize=parsed.emphasize, style=parsed.style),
        idempotency_key=parsed.idempotency_key,
    )


async def run_command(parsed: argparse.Namespace, service: GeneratorService) -> int:
    """Execute a parsed command against an initialized service."""
    if parsed.mode == "generate":
        result = await service.generate(build_options(parsed))
        _print_json(result)
        return 0 if result.success else 1

    if parsed.mode == "request":
        request, response = await service.get_request_with_response(parsed.request_id)
        if request is None:
            print(f"Request not found: {parsed.request_id}", file=sys.stderr)
            return 1
        _print_json({"request": request, "response": response})
        return 0

    if parsed.mode == "response":
        response = await service.get_response(parsed.response_id)
        if response is None:
            print(f"Response not found: {parsed.response_id}", file=sys.stderr)
            return 1
        _print_json(response)
        return 0

    if parsed.mode == "list":
        requests = await service.list_requests(parsed.owner, limit=parsed.limit)
        for request in requests:
            print(
                f"{request.id}  {request.status.value:<10}  {request.generate_type.value:<11}  "
                f"{request.job.role} @ {request.job.company}"
            )
        return 0

    if parsed.mode == "reap":
        reaped = await service.reap_stalled()
        print(f"Reaped {len(reaped)} stalled request(s)")
        for request_id in reaped:
            print(f"- {request_id}")
        return 0

    return 0


async def _run(parsed: argparse.Namespace, settings: Settings) -> int:
    service = create_generator_service(settings)
    await service.initialize()
    try:
        return await run_command(parsed, service)
    finally:
        await service.close()


def main(args: list[str] | None = None) -> int:
    """Main entry point for the application.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    try:
        settings = Settings()
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    configure_logging(level=parsed.log_level or settings.log_level)

    if parsed.mode is None:
        parser.print_help()
        return 0

    logger.info(f"Job Finder generator v{__version__} running {parsed.mode}")

    try:
        return asyncio.run(_run(parsed, settings))
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except GenerationError as e:
        logger.error(f"{parsed.mode} failed [{e.code.value}]: {e}")
        print(f"Error [{e.code.value}]: {e}", file=sys.stderr)
        return 1
    except RepositoryError as e:
        logger.error(f"{parsed.mode} failed with a database error: {e}")
        print(f"Database error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
