"""Entry point and dependency wiring for the accounts service.

Core services and concrete adapters meet only here. Everything else
depends on the ports in ``accounts.core.ports``.

Startup order:
- settings from the environment
- the configured user repository
- UserService on top of it
- the REST server or the interactive CLI, depending on RUN_MODE
"""

import asyncio
import json
import logging
import sys
import urllib.parse
from typing import Any

from accounts.adapters.cli.commands import CLICommandHandler
from accounts.adapters.rest.http_server import UserHTTPServer
from accounts.adapters.rest.receiver import UserRestReceiver
from accounts.adapters.store.memory import InMemoryUserRepository
from accounts.adapters.store.sqlite import SQLiteUserRepository
from accounts.config import Settings, load_settings
from accounts.core.ports import UserRepositoryPort
from accounts.core.uniqueness import UniquenessChecker
from accounts.core.user_service import UserService

logger = logging.getLogger(__name__)

CLI_PROMPT = "accounts> "


def _split_command(line: str) -> tuple[str, dict[str, Any]]:
    """Split ``<command> [json-object]`` into its name and arguments.

    Raises:
        json.JSONDecodeError: If the argument text is not valid JSON.
        ValueError: If the arguments are not a JSON object.
    """
    name, _, raw_args = line.partition(" ")
    raw_args = raw_args.strip()
    args = json.loads(raw_args) if raw_args else {}
    if not isinstance(args, dict):
        raise ValueError("Arguments must be a JSON object")
    return name.lower(), args


async def _run_cli_interactive(cli_handler: CLICommandHandler) -> None:
    """Read commands from stdin until ``exit`` or end of input.

    Each result is printed as indented JSON. Bad input is reported and
    the session continues.
    """
    logger.info("Interactive CLI ready ('help' lists commands, 'exit' quits)")
    loop = asyncio.get_running_loop()

    while True:
        try:
            # input() blocks, so it runs on the default executor
            line = (await loop.run_in_executor(None, input, CLI_PROMPT)).strip()
        except EOFError:
            logger.info("End of input, leaving CLI")
            return
        except KeyboardInterrupt:
            logger.info("Input interrupted")
            continue

        if not line:
            continue
        if line.lower() == "exit":
            logger.info("Leaving CLI")
            return
        if line.lower() == "help":
            _print_cli_help()
            continue

        try:
            command, args = _split_command(line)
        except json.JSONDecodeError:
            logger.error("Arguments are not valid JSON, see 'help'")
            continue
        except ValueError as e:
            logger.error(str(e))
            continue

        try:
            result = await _execute_cli_command(cli_handler, command, args)
        except ValueError as e:
            result = {"status": "error", "message": str(e)}
        print(json.dumps(result, indent=2, default=str))


def _require_user_id(args: dict[str, Any]) -> int:
    if "user_id" not in args:
        raise ValueError("Missing required parameter: user_id")
    try:
        return int(args["user_id"])
    except (TypeError, ValueError) as e:
        raise ValueError(f"user_id must be an integer, got {args['user_id']!r}") from e


async def _execute_cli_command(
    cli_handler: CLICommandHandler,
    command: str,
    args: dict[str, Any],
) -> dict[str, Any]:
    """Dispatch one parsed CLI command to the handler.

    Raises:
        ValueError: For an unknown command or missing/invalid arguments.
    """
    if command == "create":
        missing = [key for key in ("username", "email", "password") if key not in args]
        if missing:
            raise ValueError(f"Missing required parameter(s): {', '.join(missing)}")
        return await cli_handler.create_user(
            username=args["username"],
            email=args["email"],
            password=args["password"],
        )

    if command == "update":
        return await cli_handler.update_user(
            user_id=_require_user_id(args),
            email=args.get("email"),
        )

    if command == "list":
        return await cli_handler.list_users()

    by_id = {
        "get": cli_handler.get_user,
        "delete": cli_handler.delete_user,
        "activate": cli_handler.activate_user,
        "deactivate": cli_handler.deactivate_user,
    }
    if command in by_id:
        return await by_id[command](_require_user_id(args))

    raise ValueError(f"Unknown command: {command}. Type 'help' to list commands.")


def _print_cli_help() -> None:
    print(
        """
Commands take an optional JSON object on the same line.

  create {"username": "alice", "email": "alice@example.com", "password": "pw"}
      Register an ACTIVE user. username, email and password are required.

  update {"user_id": 1, "email": "new@example.com"}
      Change a user's email. Omit email to leave it unchanged.

  get {"user_id": 1}          Show one user.
  list                        Show all users, ordered by id.
  delete {"user_id": 1}       Remove a user.
  activate {"user_id": 1}     INACTIVE -> ACTIVE.
  deactivate {"user_id": 1}   ACTIVE -> INACTIVE.

  help                        Show this text.
  exit                        Quit.
"""
    )


def configure_logging(log_level: str, log_format: str) -> None:
    """Send root logging to stdout at ``log_level``.

    Args:
        log_level: Level name such as INFO or DEBUG.
        log_format: "json" for one JSON object per line, otherwise plain text.
    """
    if log_format == "json":
        fmt = (
            '{"time": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}'
        )
    else:
        fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format=fmt,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )


def build_repository(settings: Settings) -> UserRepositoryPort:
    """Create the user repository named by ``settings.store_backend``.

    Raises:
        ValueError: If the backend name is not recognized.
    """
    backend = settings.store_backend

    if backend == "memory":
        logger.info("Using in-memory user store")
        return InMemoryUserRepository()

    if backend == "sqlite":
        logger.info(f"Using SQLite user store at {settings.store_sqlite_path}")
        return SQLiteUserRepository(db_path=settings.store_sqlite_path)

    if backend == "postgresql":
        # asyncpg is only imported when PostgreSQL is selected
        from accounts.adapters.store.postgresql import PostgreSQLUserRepository

        if not settings.database_url:
            logger.info("Using PostgreSQL user store with default connection")
            return PostgreSQLUserRepository()

        url = urllib.parse.urlparse(settings.database_url)
        logger.info(f"Using PostgreSQL user store at {url.hostname}:{url.port or 5432}")
        return PostgreSQLUserRepository(
            host=url.hostname or "localhost",
            port=url.port or 5432,
            database=url.path.lstrip("/") or "accounts",
            user=url.username or "accounts",
            password=url.password or "",
        )

    raise ValueError(f"Unknown store backend: {backend}")


def build_service(settings: Settings, repository: UserRepositoryPort) -> UserService:
    """Wire the core user service onto a repository."""
    return UserService(
        repository=repository,
        uniqueness=UniquenessChecker(repository),
        allow_own_email=settings.allow_own_email_on_update,
    )


async def _serve(service: UserService, settings: Settings) -> None:
    server = UserHTTPServer(
        receiver=UserRestReceiver(service),
        host=settings.http_host,
        port=settings.http_port,
    )
    await server.start()
    try:
        # runs until the task is cancelled
        await asyncio.Event().wait()
    finally:
        await server.stop()


async def bootstrap() -> None:
    """Build every component from settings and run the selected mode.

    The repository is always closed on the way out.

    Raises:
        SystemExit: If the store backend or run mode is invalid.
    """
    settings = load_settings()
    configure_logging("DEBUG" if settings.debug else settings.log_level, settings.log_format)
    logger.info("Starting accounts service")

    try:
        repository = build_repository(settings)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    service = build_service(settings, repository)

    try:
        logger.info(f"Run mode: {settings.run_mode}")
        if settings.run_mode == "server":
            await _serve(service, settings)
        elif settings.run_mode == "cli":
            await _run_cli_interactive(CLICommandHandler(service))
        else:
            logger.error(f"Unsupported run mode: {settings.run_mode}")
            sys.exit(1)
    finally:
        await repository.close()


def main() -> None:
    """Console script entry point.

    Exit codes:
        0: Clean shutdown
        1: Startup failure or unhandled error
        130: Stopped with Ctrl-C
    """
    try:
        asyncio.run(bootstrap())
    except KeyboardInterrupt:
        logger.warning("Interrupted, shutting down")
        sys.exit(130)
    except asyncio.CancelledError:
        logger.info("Shutdown complete")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Unhandled error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
