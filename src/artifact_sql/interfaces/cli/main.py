import argparse
import asyncio
import importlib
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import colorlog

from artifact_sql.core.errors import ArtifactSQLError
from artifact_sql.core.models import QueryResult
from artifact_sql.settings import Settings, load_settings

try:
    # Prefer package-defined version
    from artifact_sql import __version__ as _PACKAGE_VERSION
except ImportError:  # pragma: no cover
    _PACKAGE_VERSION = None  # type: ignore[assignment]
    try:
        # Fallback to installed package metadata
        from importlib.metadata import version as _pkg_version, PackageNotFoundError

        _PACKAGE_VERSION = _pkg_version("artifact-sql")  # type: ignore[assignment]
    except PackageNotFoundError:
        _PACKAGE_VERSION = "unknown"  # type: ignore[assignment]


def setup_logging(
    verbose: bool = False, warnings_only: bool = False, errors_only: bool = False
) -> None:
    logger = logging.getLogger()
    for h in list(logger.handlers):
        logger.removeHandler(h)
    log_format = (
        "%(asctime)s:%(levelname)s:%(name)s in %(filename)s:%(funcName)s:%(lineno)d: %(message)s"
    )
    log_colors = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    }
    stream_handler = colorlog.StreamHandler()
    formatter = colorlog.ColoredFormatter(f"%(log_color)s{log_format}", log_colors=log_colors)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    if errors_only:
        logger.setLevel(logging.ERROR)
    elif warnings_only:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)


# Settings fields that can be overridden from the command line
_OVERRIDE_ARGS = (
    "server_url",
    "workspace",
    "token",
    "collection",
    "service_id",
    "visibility",
)


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: Dict[str, Any] = {name: getattr(args, name, None) for name in _OVERRIDE_ARGS}
    if getattr(args, "local_dev", False):
        overrides["local_dev"] = True
    config = getattr(args, "config", None)
    return load_settings(Path(config) if config else None, **overrides)


def _new_session(settings: Settings):
    # Imported lazily so `--help` works without the RPC client installed
    session_mod = importlib.import_module("artifact_sql.session")
    return session_mod.SessionContext(settings)


def print_result(result: Optional[QueryResult]) -> None:
    """Display a query result as a table; zero rows prints OK."""
    if result is None:
        return
    if result.is_empty:
        print("OK")
        return
    print(result.to_frame().to_string(index=False))


def _run_session_command(args: argparse.Namespace, action) -> int:
    """Build the session, run `action(context)` and map failures to exit codes."""
    try:
        settings = _settings_from_args(args)
    except (FileNotFoundError, ValueError) as e:
        logging.error("Invalid configuration: %s", e)
        return 2
    try:
        context = _new_session(settings)
    except (ModuleNotFoundError, ImportError, RuntimeError) as e:
        logging.error("Failed to start session: %s", e)
        return 3

    async def _main() -> int:
        try:
            return await action(context)
        finally:
            await context.close()

    try:
        return asyncio.run(_main())
    except ArtifactSQLError as e:
        logging.error("%s", e)
        return 1
    except KeyboardInterrupt:
        return 0
    except Exception as e:  # noqa: BLE001
        logging.error("Command %s failed: %s", args.command, e)
        return 1


def cmd_artifacts(args: argparse.Namespace) -> int:
    """List the artifacts of the configured collection."""

    async def action(context) -> int:
        items = await context.list_artifacts()
        if not items:
            print("No artifacts found.")
            return 0
        for item in items:
            print(f"{item.label}\t{item.id}")
        return 0

    return _run_session_command(args, action)


def cmd_select(args: argparse.Namespace) -> int:
    """Bind an artifact and print a preview of its dataset."""

    async def action(context) -> int:
        preview = await context.select_artifact(args.artifact)
        bound = context.bound_table
        logging.info(
            "Loaded table name: %s from %s",
            bound.logical_name if bound else context.settings.table_name,
            context.current_artifact.label if context.current_artifact else args.artifact,
        )
        print_result(preview)
        return 0

    return _run_session_command(args, action)


def cmd_query(args: argparse.Namespace) -> int:
    """Bind an artifact and run SQL against it."""

    async def action(context) -> int:
        await context.bind(args.artifact)
        print_result(await context.facade.run_query(args.sql))
        return 0

    return _run_session_command(args, action)


def cmd_schema(args: argparse.Namespace) -> int:
    async def action(context) -> int:
        await context.bind(args.artifact)
        print_result(await context.facade.get_schema())
        return 0

    return _run_session_command(args, action)


def cmd_docs(args: argparse.Namespace) -> int:
    async def action(context) -> int:
        service_mod = importlib.import_module("artifact_sql.interfaces.hypha.service")
        text = await service_mod.ServiceOperations(context).get_docs(args.artifact)
        if not text:
            logging.warning("No %s in artifact %s", context.settings.docs_file, args.artifact)
            return 1
        print(text)
        return 0

    return _run_session_command(args, action)


def cmd_sample(args: argparse.Namespace) -> int:
    """Bind a local CSV file as the dataset, then preview it or run --sql."""
    csv_path = Path(args.csv)
    if not csv_path.exists():
        logging.error("CSV file not found: %s", csv_path)
        return 2

    async def action(context) -> int:
        preview = await context.load_local_file(csv_path)
        logging.info("Loaded local sample as %s", context.settings.table_name)
        if args.sql:
            print_result(await context.facade.run_query(args.sql))
        else:
            print_result(preview)
        return 0

    return _run_session_command(args, action)


def cmd_serve(args: argparse.Namespace) -> int:
    """Connect to Hypha, register the service and serve until interrupted."""

    async def action(context) -> int:
        service_mod = importlib.import_module("artifact_sql.interfaces.hypha.service")
        try:
            await context.runtime.acquire()
        except ArtifactSQLError as e:
            # Engine acquisition is retried on the first service call
            logging.error("%s", e)
        server = await context.connection.server()
        service_id = await service_mod.register_service(context, server)
        logging.info("Serving %s; press Ctrl+C to stop", service_id)
        await asyncio.Event().wait()
        return 0

    return _run_session_command(args, action)


def cmd_mcp_server(args: argparse.Namespace) -> int:
    """Start the MCP server.

    Default: stdio. If --port is set, run HTTP transport at host:port.
    """
    try:
        mcp_server = importlib.import_module("artifact_sql.interfaces.mcp.server")
    except (ModuleNotFoundError, AttributeError, ImportError, RuntimeError) as e:
        logging.error(
            "Failed to import MCP server. Ensure 'mcp' is installed. Error: %s",
            e,
        )
        return 3
    try:
        settings = _settings_from_args(args)
    except (FileNotFoundError, ValueError) as e:
        logging.error("Invalid configuration: %s", e)
        return 2
    port = getattr(args, "port", None)
    host = getattr(args, "host", None) or "127.0.0.1"
    if port:
        logging.info("Starting MCP HTTP server on %s:%s", host, port)
    else:
        logging.info("Starting MCP stdio server")
    try:
        if port:
            getattr(mcp_server, "run_http")(settings, host=host, port=int(port))
        else:
            mcp_server.run(settings)
    except KeyboardInterrupt:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="artifact-sql",
        description=f"Artifact SQL (v{_PACKAGE_VERSION})",
    )
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    p.add_argument(
        "--warnings-only",
        action="store_true",
        help="Show only warnings and errors (overrides --verbose)",
    )
    p.add_argument(
        "--errors-only",
        action="store_true",
        help="Show only errors (overrides --warnings-only and --verbose)",
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (defaults to config/settings.yaml when present)",
    )
    p.add_argument("--server-url", default=None, help="Hypha server URL")
    p.add_argument("--workspace", default=None, help="Hypha workspace")
    p.add_argument("--token", default=None, help="Hypha auth token (skips cached login)")
    p.add_argument("--collection", default=None, help="Artifact collection to search")
    p.add_argument("--service-id", default=None, help="Id of the registered service")
    p.add_argument("--visibility", default=None, help="Service visibility (e.g. protected, public)")
    p.add_argument(
        "--local-dev",
        action="store_true",
        help="Local development: run DuckDB in-thread unless a local extension bundle exists",
    )

    sub = p.add_subparsers(dest="command", required=True)

    p_artifacts = sub.add_parser("artifacts", help="List artifacts in the collection")
    p_artifacts.set_defaults(func=cmd_artifacts)

    p_select = sub.add_parser("select", help="Bind an artifact and preview its dataset")
    p_select.add_argument("artifact", help="Artifact id or name (case insensitive)")
    p_select.set_defaults(func=cmd_select)

    p_query = sub.add_parser("query", help="Run SQL against an artifact's dataset")
    p_query.add_argument("artifact", help="Artifact id or name (case insensitive)")
    p_query.add_argument("sql", help="SQL text; the dataset is available as table 'dataset'")
    p_query.set_defaults(func=cmd_query)

    p_schema = sub.add_parser("schema", help="Show the dataset schema of an artifact")
    p_schema.add_argument("artifact", help="Artifact id or name (case insensitive)")
    p_schema.set_defaults(func=cmd_schema)

    p_docs = sub.add_parser("docs", help="Print the README.md of an artifact")
    p_docs.add_argument("artifact", help="Artifact id or name (case insensitive)")
    p_docs.set_defaults(func=cmd_docs)

    p_sample = sub.add_parser("sample", help="Load a local CSV file as the dataset")
    p_sample.add_argument("csv", help="Path to a CSV file with a header row")
    p_sample.add_argument("--sql", default=None, help="SQL to run instead of the preview")
    p_sample.set_defaults(func=cmd_sample)

    p_serve = sub.add_parser("serve", help="Register the SQL service on Hypha and serve")
    p_serve.set_defaults(func=cmd_serve)

    p_mcp = sub.add_parser("mcp-server", help="Run MCP server (stdio or HTTP)")
    p_mcp.add_argument(
        "--port",
        default=None,
        help="If set, run HTTP transport on the given port",
    )
    p_mcp.add_argument(
        "--host",
        default=None,
        help="Host to bind for HTTP transport (default 127.0.0.1)",
    )
    p_mcp.set_defaults(func=cmd_mcp_server)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        verbose=bool(args.verbose),
        warnings_only=bool(getattr(args, "warnings_only", False)),
        errors_only=bool(getattr(args, "errors_only", False)),
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
