"""Main entry point for the Steam achievement aggregator.

This module provides the command-line entry point with:
- Command-line argument parsing
- Service construction and dependency injection
- Resource cleanup on exit
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import structlog

from achievement_aggregator import __version__
from achievement_aggregator.models import AppConfig
from achievement_aggregator.services.cache import ExpiringCache
from achievement_aggregator.services.config import ConfigurationService, require_api_key
from achievement_aggregator.services.errors import ConfigurationError
from achievement_aggregator.services.gateway import EndpointResponse, SteamGateway
from achievement_aggregator.services.logging import setup_logging
from achievement_aggregator.services.rate_limiter import RateLimiterService
from achievement_aggregator.services.response_cache import ResponseCacheService
from achievement_aggregator.services.steam_client import SteamClientService
from achievement_aggregator.services.steam_library import SteamLibraryService

log = structlog.stdlib.get_logger()

VERSION = __version__


class ApplicationContext:
    """Container for application services.

    Services are process-wide: built once, on first use, and shared by every
    request until ``cleanup``.
    """

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path: Path | None = config_path

        # Services (initialized lazily)
        self._config_service: ConfigurationService | None = None
        self._steam_client: SteamClientService | None = None
        self._library: SteamLibraryService | None = None
        self._gateway: SteamGateway | None = None

        # Configuration
        self._config: AppConfig | None = None

    @property
    def config_service(self) -> ConfigurationService:
        """Get the configuration service (lazy initialization)."""
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        """Get the current application configuration."""
        if self._config is None:
            self._config = self.config_service.load_config()
        return self._config

    @property
    def steam_client(self) -> SteamClientService:
        """Get the Steam client (lazy initialization).

        Raises:
            ConfigurationError: If no Steam API key is configured
        """
        if self._steam_client is None:
            config = self.config
            self._steam_client = SteamClientService(
                api_key=require_api_key(config),
                base_url=config.base_url,
                timeout=config.request_timeout,
                cache_ttl=config.upstream_cache_ttl,
                cache=ExpiringCache(
                    "steam-requests",
                    default_ttl=config.upstream_cache_ttl,
                    max_entries=config.cache_max_entries,
                ),
            )
        return self._steam_client

    @property
    def library(self) -> SteamLibraryService:
        """Get the library aggregation service (lazy initialization)."""
        if self._library is None:
            self._library = SteamLibraryService(
                steam_client=self.steam_client,
                concurrent_fetches=self.config.concurrent_achievement_fetches,
            )
        return self._library

    @property
    def gateway(self) -> SteamGateway:
        """Get the endpoint gateway (lazy initialization)."""
        if self._gateway is None:
            config = self.config
            self._gateway = SteamGateway(
                library=self.library,
                response_cache=ResponseCacheService(
                    default_ttl=config.response_cache_ttl,
                    max_entries=config.cache_max_entries,
                ),
                games_limiter=RateLimiterService(
                    "user_games",
                    window_ms=config.games_rate_window_ms,
                    max_requests=config.games_rate_max_requests,
                ),
                achievements_limiter=RateLimiterService(
                    "game_achievements",
                    window_ms=config.achievements_rate_window_ms,
                    max_requests=config.achievements_rate_max_requests,
                ),
                games_cache_ttl=config.games_cache_ttl,
                achievements_cache_ttl=config.achievements_cache_ttl,
            )
        return self._gateway

    async def cleanup(self) -> None:
        """Close connections."""
        if self._steam_client is not None:
            await self._steam_client.close()
        log.debug("Application cleanup complete")


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="steam-achievements",
        description="Aggregate a Steam user's library and achievements into one JSON document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  steam-achievements games 76561198000000000
  steam-achievements games 76561198000000000 --include-achievements
  steam-achievements achievements 76561198000000000 440
        """
    )

    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ~/.config/steam-achievement-aggregator/config.json)"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level (default: from configuration)"
    )
    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for log files (default: console only)"
    )
    _ = parser.add_argument(
        "--client-key",
        default="cli",
        help="Client identity used for rate limiting (default: cli)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    games = subparsers.add_parser("games", help="List a user's owned games")
    _ = games.add_argument("steam_id", help="SteamID64 (17 digits)")
    _ = games.add_argument(
        "--include-achievements",
        action="store_true",
        help="Attach each game's merged achievements"
    )

    achievements = subparsers.add_parser("achievements", help="Show one game's achievements")
    _ = achievements.add_argument("steam_id", help="SteamID64 (17 digits)")
    _ = achievements.add_argument("app_id", help="Steam app id")

    return parser


async def run_command(context: ApplicationContext, args: argparse.Namespace) -> EndpointResponse:
    """Dispatch one CLI command through the gateway."""
    try:
        if args.command == "games":
            return await context.gateway.user_games(
                args.client_key,
                args.steam_id,
                "true" if args.include_achievements else None,
            )
        return await context.gateway.game_achievements(args.client_key, args.steam_id, args.app_id)
    finally:
        await context.cleanup()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)

    _ = setup_logging(log_level=args.log_level or "INFO", log_dir=args.log_dir)

    context = ApplicationContext(config_path=args.config)
    if args.log_level is None and context.config.log_level != "INFO":
        _ = setup_logging(log_level=context.config.log_level, log_dir=args.log_dir)
    log.info("Starting Steam achievement aggregator", version=VERSION, command=args.command)

    try:
        response = asyncio.run(run_command(context, args))
        print(json.dumps(response.body, indent=2, ensure_ascii=False))
        exit_code = 0 if response.status_code < 400 else 1

    except ConfigurationError as e:
        friendly = e.to_user_friendly()
        print(f"Configuration error: {friendly.message}", file=sys.stderr)
        for action in friendly.suggested_actions[:3]:
            print(f"  • {action}", file=sys.stderr)
        exit_code = 2

    except KeyboardInterrupt:
        log.info("Interrupted by user")
        exit_code = 130  # Standard exit code for SIGINT

    log.info("Application exiting", exit_code=exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
