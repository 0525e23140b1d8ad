"""
Command-line interface for the Domain Shark gateway.

This module provides the main CLI entry point with commands for:
- serve: Run the HTTP gateway with uvicorn
- whois: Run one WHOIS availability check from the terminal
- config: Show the configuration resolved from the environment
"""

import argparse
import asyncio
import sys
from typing import Optional

import uvicorn

from . import __version__
from .app import create_app
from .audit_logger import AuditLogger
from .config import ServiceConfig, load_config_from_env
from .domain_validator import DomainValidator
from .enums import AvailabilityStatus, LogLevel
from .exceptions import DomainSharkError
from .whois_client import WHOISClient

STATUS_SYMBOLS = {
    AvailabilityStatus.AVAILABLE: "✅",
    AvailabilityStatus.TAKEN: "❌",
    AvailabilityStatus.UNKNOWN: "❔",
}


def positive_float(value: str) -> float:
    """argparse type accepting only numbers greater than zero."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not a number")
    if not number > 0:
        raise argparse.ArgumentTypeError(f"{value!r} must be greater than zero")
    return number


async def check_whois_domain(
    domain: str,
    config: ServiceConfig,
    verbose: bool = False,
) -> int:
    """
    Check a single domain over WHOIS.

    Args:
        domain: Domain to check
        config: Service configuration
        verbose: Enable verbose output

    Returns:
        Exit code (0 for available, 1 for taken/unknown, 2 for invalid input)
    """
    logger = AuditLogger(output_format="text", min_level=LogLevel.DEBUG) if verbose else None

    client = WHOISClient(
        timeout=config.whois.timeout_seconds,
        max_response_bytes=config.whois.max_response_bytes,
        port=config.whois.port,
        logger=logger,
    )

    validation = DomainValidator(client.get_supported_tlds()).validate(domain)
    if not validation.valid or validation.canonical_domain is None:
        message = validation.error.message if validation.error else "Invalid domain format"
        print(f"Error: {message}", file=sys.stderr)
        return 2

    print(f"Checking {validation.canonical_domain} ...")

    try:
        response = await client.query(validation.canonical_domain)
    except DomainSharkError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 2

    print(f"{STATUS_SYMBOLS[response.status]} {response.status.value}")

    if verbose:
        print(f"  Server: {client.get_server_for_tld(validation.canonical_domain.rsplit('.', 1)[-1])}")
        print(f"  State: {response.state.value}")
        print(f"  Bytes: {len(response.raw_response)}")
        if response.truncated:
            print("  Reply was truncated at the size limit")

    return 0 if response.status == AvailabilityStatus.AVAILABLE else 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Handle the 'serve' command."""
    config = load_config_from_env()
    app = create_app(config)
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        access_log=False,
    )
    return 0


def cmd_whois(args: argparse.Namespace) -> int:
    """Handle the 'whois' command."""
    config = load_config_from_env()
    if args.timeout is not None:
        config.whois.timeout_seconds = args.timeout

    return asyncio.run(check_whois_domain(
        domain=args.domain,
        config=config,
        verbose=args.verbose,
    ))


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config = load_config_from_env()

    if args.action == "show":
        print("Configuration from environment:")
        print(f"  Free checks per client: {config.admission.free_checks_per_client}")
        print(f"  Monthly ceiling: {config.admission.monthly_ceiling}")
        print(f"  Premium API: {config.upstream.base_url}")
        print(f"  Premium API token: {'set' if config.upstream.api_token else 'not set'}")
        print(f"  Alert webhook: {'set' if config.webhook.url else 'not set'}")
        print(f"  Counter store: {'redis' if config.store.redis_url else 'memory'}")
        print(f"  Client IP header: {config.client_ip_header}")
        print(f"  WHOIS timeout: {config.whois.timeout_seconds}s")
        print(f"  Log level: {config.logging.level}")
        print(f"  Log format: {config.logging.output_format}")
        return 0

    elif args.action == "validate":
        problems = []
        if not config.upstream.api_token:
            problems.append("FASTLY_API_TOKEN is not set; premium checks will return 503")
        if not config.webhook.url:
            problems.append("ALERT_WEBHOOK is not set; breaker trips will not be announced")

        for problem in problems:
            print(f"Warning: {problem}")
        if not problems:
            print("Configuration is complete.")
        return 0

    return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="domain-shark",
        description="Domain availability gateway",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'serve' command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP gateway",
        description=(
            "Run the HTTP gateway. Clients are identified by CLIENT_IP_HEADER "
            "(default CF-Connecting-IP), which a trusted proxy must set or strip; "
            "set it empty to use the socket peer address."
        ),
    )
    serve_parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Interface to bind (default: 127.0.0.1)",
    )
    serve_parser.add_argument(
        "--port", "-p",
        type=int,
        default=8787,
        help="Port to listen on (default: 8787)",
    )
    serve_parser.add_argument(
        "--log-level",
        choices=["critical", "error", "warning", "info", "debug"],
        default="warning",
        help="uvicorn log level (default: warning)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # 'whois' command
    whois_parser = subparsers.add_parser(
        "whois",
        help="Check a single domain over WHOIS",
    )
    whois_parser.add_argument(
        "domain",
        help="Domain to check (e.g., example.de)",
    )
    whois_parser.add_argument(
        "--timeout", "-t",
        type=positive_float,
        help="Override the WHOIS deadline in seconds",
    )
    whois_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output",
    )
    whois_parser.set_defaults(func=cmd_whois)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Inspect configuration",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "validate"],
        help="Configuration action",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
