"""Main entry point for the pulsadash application.

Sets up the Typer CLI application, wires the dependencies (Composition Root)
and defines the CLI commands.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
import typer
from typing_extensions import Annotated

from pulsadash.core.services.health_service import HealthCheckService
from pulsadash.core.services.login_guard import LoginGuard, format_remaining
from pulsadash.core.services.member_service import MEMBER_CACHE_KEY, MemberDirectoryService
from pulsadash.domain.errors import AbortError, PulsaDashError
from pulsadash.domain.models.common import ThrottleScope
from pulsadash.domain.models.listing import MemberFilters
from pulsadash.domain.models.member import Member
from pulsadash.infrastructure.cache.key_value_store import DiskKeyValueStore
from pulsadash.infrastructure.cache.paginated_cache import PaginatedCache
from pulsadash.infrastructure.cli.display import ConsoleDisplay
from pulsadash.infrastructure.config.settings import (
    get_api_endpoints, get_api_token, get_cache_dir, get_max_retries,
    get_probe_timeout, get_request_timeout, load_configuration
)
from pulsadash.infrastructure.monitoring.logger_setup import configure_logging_from_settings
from pulsadash.infrastructure.resilience.api_retry import ApiRequestExecutor
from pulsadash.infrastructure.resilience.attempt_throttle import AttemptThrottle
from pulsadash.infrastructure.resilience.endpoint_resolver import EndpointResolver

logger = logging.getLogger(__name__)


@dataclass
class Dependencies:
    """Wired application services for one CLI invocation."""
    ui: ConsoleDisplay
    store: DiskKeyValueStore
    client: httpx.AsyncClient
    resolver: EndpointResolver
    executor: ApiRequestExecutor
    member_cache: PaginatedCache[Member]
    member_service: MemberDirectoryService
    health_service: HealthCheckService
    throttle: AttemptThrottle

    async def aclose(self) -> None:
        await self.client.aclose()
        self.store.close()


def create_dependencies() -> Dependencies:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Raises:
        ConfigurationError: If the configuration is unusable (e.g. no endpoints).
    """
    load_configuration()
    configure_logging_from_settings()

    store = DiskKeyValueStore(get_cache_dir())
    client = httpx.AsyncClient(timeout=None)
    resolver = EndpointResolver(get_api_endpoints(), client=client, probe_timeout_s=get_probe_timeout())
    executor = ApiRequestExecutor(
        resolver,
        client=client,
        token=get_api_token(),
        timeout_s=get_request_timeout(),
        retries=get_max_retries(),
    )
    member_cache: PaginatedCache[Member] = PaginatedCache(store, Member, MEMBER_CACHE_KEY)
    return Dependencies(
        ui=ConsoleDisplay(),
        store=store,
        client=client,
        resolver=resolver,
        executor=executor,
        member_cache=member_cache,
        member_service=MemberDirectoryService(executor, member_cache),
        health_service=HealthCheckService(executor, store),
        throttle=AttemptThrottle(store),
    )


# --- Typer App Definition ---
app = typer.Typer(
    name="pulsadash",
    help="pulsadash: resilient request layer for the pulsa reseller dashboard.",
    add_completion=False,
)


def run_command(command: Callable[[Dependencies], Awaitable[Any]]) -> None:
    """Wires dependencies, runs an async command and releases resources.

    Failures are shown on the console and turned into exit code 1.
    """
    ui = ConsoleDisplay()
    try:
        deps = create_dependencies()
    except (PulsaDashError, OSError) as e:
        logger.error(f"Initialization failed: {e}")
        ui.display_error(f"Initialization failed: {e}")
        raise typer.Exit(code=1)

    async def _run() -> None:
        try:
            await command(deps)
        finally:
            await deps.aclose()

    try:
        asyncio.run(_run())
    except AbortError as e:
        deps.ui.display_warning(f"Request aborted: {e.reason}")
        raise typer.Exit(code=1)
    except httpx.HTTPError as e:
        logger.error(f"Backend unreachable: {e}")
        deps.ui.display_error(f"Backend unreachable: {e}")
        raise typer.Exit(code=1)


# --- CLI Commands ---

@app.command()
def probe() -> None:
    """Resolve and show the active API endpoint."""
    async def _probe(deps: Dependencies) -> None:
        endpoint = await deps.resolver.resolve()
        deps.ui.display_output(endpoint, title="Active endpoint")

    run_command(_probe)


@app.command()
def health(
    fresh: Annotated[bool, typer.Option("--fresh", help="Ignore the cached measurement.")] = False,
) -> None:
    """Show the backend health check response time."""
    async def _health(deps: Dependencies) -> None:
        cached = None if fresh else deps.health_service.get_cached()
        result = cached or await deps.health_service.measure_response_time()
        deps.ui.display_output(result, title="API response time" + (" (cached)" if cached else ""))

    run_command(_health)


@app.command()
def members(
    session_key: Annotated[str, typer.Option("--session-key", envvar="PULSADASH_SESSION_KEY", help="Admin session key.")],
    auth_seed: Annotated[str, typer.Option("--auth-seed", envvar="PULSADASH_AUTH_SEED", help="Auth seed of the session.")],
    search: Annotated[str, typer.Option("--search", "-s", help="Search term.")] = "",
    status: Annotated[str, typer.Option("--status", help="Status filter ('all', 'active', 'inactive').")] = "all",
    level: Annotated[str, typer.Option("--level", help="Level code filter.")] = "",
    verification: Annotated[str, typer.Option("--verification", help="Verification filter.")] = "all",
    load_more: Annotated[bool, typer.Option("--load-more", help="Continue from the cached cursor.")] = False,
) -> None:
    """List members, served from the cache while it is fresh."""
    filters = MemberFilters(
        search_term=search, status_filter=status, level_filter=level, verification_filter=verification
    )

    async def _members(deps: Dependencies) -> None:
        entry = await deps.member_service.load(
            filters, session_key=session_key, auth_seed=auth_seed, load_more=load_more
        )
        if entry is None:
            deps.ui.display_error("Failed to load members.")
            raise typer.Exit(code=1)
        deps.ui.display_table(
            f"Members {len(entry.records)}/{entry.total}" + (" (more available)" if entry.has_more else ""),
            ["Kode", "Nama", "Saldo", "Level", "Aktif"],
            [[m.kode, m.nama, m.saldo, m.kode_level, "yes" if m.aktif else "no"] for m in entry.records],
        )

    run_command(_members)


@app.command(name="throttle-status")
def throttle_status(
    scope: Annotated[str, typer.Argument(help="Throttle scope, e.g. 'admin-login'.")],
) -> None:
    """Show whether a login scope is locked out."""
    async def _status(deps: Dependencies) -> None:
        current = LoginGuard(deps.throttle, ThrottleScope(scope)).status()
        if current.blocked:
            deps.ui.display_warning(f"'{scope}' is locked. Try again in {format_remaining(current.remaining_ms)}.")
        else:
            deps.ui.display_info(f"'{scope}' is not locked.")

    run_command(_status)


@app.command(name="clear-cache")
def clear_cache_command() -> None:
    """Clear the member cache, the health cache and the resolved endpoint."""
    async def _clear(deps: Dependencies) -> None:
        deps.member_cache.clear()
        deps.health_service.clear()
        deps.resolver.clear()
        deps.ui.display_info("Cache cleared.")

    run_command(_clear)


def cli_entry_point() -> None:
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
