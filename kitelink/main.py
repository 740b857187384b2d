"""Main entry point for the kitelink application.

Sets up the Typer CLI application, performs dependency injection (Composition Root)
and defines the CLI commands.
"""

import asyncio
import logging
from typing import Annotated, Any, Coroutine, Dict, List, Optional

import typer

from kitelink.core.client import KiteConnect
from kitelink.domain.models.endpoints import ENDPOINTS, KiteEndpoint, RateLimitCategory
from kitelink.domain.models.errors import KiteError
from kitelink.infrastructure.cli.display import ConsoleDisplay
from kitelink.infrastructure.config.settings import (
    get_access_token,
    get_api_key,
    get_api_secret,
    get_config,
    get_transport_name,
    load_client_config,
    load_configuration,
)
from kitelink.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, level_from_name, setup_logging
from kitelink.infrastructure.transport import TRANSPORTS

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

_dependencies: Optional[Dict[str, Any]] = None


def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    dependencies: Dict[str, Any] = {'ui': ConsoleDisplay()}

    # 1. Load configuration first, then configure logging from it
    load_configuration()
    setup_logging(
        log_level=level_from_name(get_config('logging.level'), logging.WARNING),
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )
    logger.info("Initializing application dependencies...")

    try:
        config = load_client_config()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        dependencies['ui'].display_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=1)

    # 2. Transport adapter chosen by name
    transport_name = get_transport_name()
    transport_cls = TRANSPORTS.get(transport_name)
    if transport_cls is None:
        logger.warning(f"Unknown transport '{transport_name}', falling back to httpx.")
        transport_cls = TRANSPORTS['httpx']

    # 3. Client facade (owns the pipeline context)
    api_key = get_api_key()
    if not api_key:
        logger.warning("Kite API key not found (KITE_API_KEY); authenticated calls will fail.")
    dependencies['client'] = KiteConnect(
        api_key=api_key or "",
        access_token=get_access_token() or "",
        config=config,
        transport=transport_cls(timeout=config.timeout),
        session_expiry_hook=lambda: dependencies['ui'].display_warning(
            "Session expired. Generate a new access token and set KITE_ACCESS_TOKEN."
        ),
    )
    dependencies['api_key'] = api_key
    logger.info("All dependencies initialized successfully.")
    return dependencies


def get_dependencies() -> Dict[str, Any]:
    """Builds the dependencies on first use; commands never run this at import."""
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="kitelink",
    help="kitelink: Kite Connect REST client with rate limiting, retries and response caching.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Manages running async functions from sync Typer commands."""
    return asyncio.run(coro)


def _parse_params(params: List[str]) -> List[tuple]:
    """['i=NSE:INFY', 'i=NSE:TCS'] -> [('i', 'NSE:INFY'), ('i', 'NSE:TCS')]"""
    pairs = []
    for param in params:
        key, sep, value = param.partition('=')
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{param}'", param_hint="--param")
        pairs.append((key, value))
    return pairs


# --- CLI Commands ---

@app.command()
def endpoints(
    category: Annotated[
        Optional[RateLimitCategory],
        typer.Option("--category", "-c", case_sensitive=False, help="Only list endpoints in this rate limit category."),
    ] = None,
):
    """List every known API operation."""
    ui = get_dependencies()['ui']
    rows = []
    for operation, endpoint in ENDPOINTS.items():
        if category is not None and endpoint.category != category:
            continue
        rows.append((
            operation.value,
            endpoint.method.value,
            endpoint.path,
            endpoint.category.value,
            "yes" if endpoint.requires_auth else "no",
            "yes" if endpoint.cacheable else "no",
        ))
    ui.display_table(
        ["Operation", "Method", "Path", "Category", "Auth", "Cached"],
        rows,
        title="Kite Connect endpoints",
    )


@app.command(name="login-url")
def login_url_command():
    """Print the browser login URL for the configured API key."""
    deps = get_dependencies()
    if not deps['api_key']:
        deps['ui'].display_error("No API key configured. Set KITE_API_KEY or kite.api_key.")
        raise typer.Exit(code=1)
    typer.echo(deps['client'].login_url())


@app.command()
def session(
    request_token: Annotated[str, typer.Argument(help="request_token from the login redirect.")],
):
    """Exchange a request token for an access token."""
    deps = get_dependencies()
    ui: ConsoleDisplay = deps['ui']
    client: KiteConnect = deps['client']

    api_secret = get_api_secret()
    if not deps['api_key'] or not api_secret:
        ui.display_error("Session exchange needs KITE_API_KEY and KITE_API_SECRET.")
        raise typer.Exit(code=1)

    async def _run() -> dict:
        try:
            return await client.generate_session(request_token, api_secret)
        finally:
            await client.aclose()

    try:
        data = run_async(_run())
    except KiteError as e:
        logger.error(f"Session exchange failed: {e}")
        ui.display_error(str(e))
        raise typer.Exit(code=1)
    ui.display_output(data, title="session")
    ui.display_info("Set KITE_ACCESS_TOKEN to the access_token above for later calls.")


@app.command()
def call(
    operation: Annotated[str, typer.Argument(help="Operation name, e.g. 'holdings' or 'order_history'.")],
    segments: Annotated[Optional[List[str]], typer.Argument(help="Path segments appended to the endpoint path.")] = None,
    param: Annotated[
        Optional[List[str]],
        typer.Option("--param", "-p", help="key=value; query for GET/DELETE, form field otherwise. Repeatable."),
    ] = None,
):
    """Dispatch one request through the pipeline and print the result."""
    deps = get_dependencies()
    ui: ConsoleDisplay = deps['ui']
    client: KiteConnect = deps['client']

    try:
        target = KiteEndpoint.from_name(operation)
    except ValueError as e:
        ui.display_error(str(e))
        raise typer.Exit(code=2)

    pairs = _parse_params(param or [])
    if target.method.value in ('GET', 'DELETE'):
        query, body = pairs, None
    else:
        query, body = None, dict(pairs)

    async def _run() -> None:
        try:
            response = await client.dispatch(target, segments or [], query_params=query, body=body)
        finally:
            await client.aclose()
        ui.display_output(response.data, title=target.value, from_cache=response.from_cache)

    try:
        run_async(_run())
    except KiteError as e:
        logger.error(f"{target.value} failed: {e}")
        ui.display_error(str(e))
        raise typer.Exit(code=1)


@app.command()
def limits():
    """Show the rate limit ceiling and current state of each category."""
    deps = get_dependencies()
    client: KiteConnect = deps['client']
    limiter = client.context.rate_limiter
    stats = limiter.get_stats()
    rows = []
    for category in RateLimitCategory:
        category_stats = stats.categories[category]
        rows.append((
            category.value,
            category.requests_per_second,
            f"{category.min_delay:.3f}s",
            category_stats.request_count,
            "yes" if limiter.can_request_immediately(category) else "no",
        ))
    title = "Rate limits" if stats.enabled else "Rate limits (disabled)"
    deps['ui'].display_table(["Category", "Req/s", "Min spacing", "Requests", "Available"], rows, title=title)


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    logger.info("Starting kitelink application...")
    try:
        app()
    finally:
        logger.info("kitelink application finished.")


if __name__ == "__main__":
    cli_entry_point()
