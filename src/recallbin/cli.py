"""Command-line interface for RecallBin."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
import httpx
import uvicorn

from . import __version__


@click.group()
@click.version_option(version=__version__, prog_name="recallbin")
def cli():
    """RecallBin - save links and notes with AI summaries."""
    pass


@cli.command()
@click.option(
    "--config-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration directory (default: ~/.recallbin)",
)
@click.option(
    "--gemini-api-key",
    type=str,
    default=None,
    help="Google Gemini API key (will be saved to .env file)",
)
@click.option(
    "--openai-api-key",
    type=str,
    default=None,
    help="OpenAI API key, used when Gemini is unavailable",
)
@click.option(
    "--data-dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Document store directory (default: <config-dir>/data)",
)
@click.option(
    "--daily-quota",
    type=int,
    default=20,
    show_default=True,
    help="AI enrichments allowed per user per day",
)
def init(
    config_dir: Optional[Path],
    gemini_api_key: Optional[str],
    openai_api_key: Optional[str],
    data_dir: Optional[Path],
    daily_quota: int,
):
    """Initialize RecallBin configuration.

    Creates the configuration directory, a .env file holding provider keys
    and a generated API token, and the document store directory.
    """
    from .config import ConfigManager, ConfigError
    from .models.config import AppConfig

    try:
        cm = ConfigManager(config_dir)

        click.echo(f"Initializing RecallBin at {cm.config_dir}...")
        cm.config_dir.mkdir(parents=True, exist_ok=True)

        token = cm.create_env_file(gemini_api_key=gemini_api_key, openai_api_key=openai_api_key)
        click.echo("[OK] Created .env file")

        app_config = AppConfig(
            data_dir=str(data_dir) if data_dir else None,
            daily_quota_limit=daily_quota,
        )
        store_dir = cm.resolve_data_dir(app_config)
        store_dir.mkdir(parents=True, exist_ok=True)

        cm.save_app_config(app_config)
        click.echo("[OK] Created config.yaml")
        click.echo(f"[OK] Created data directory at {store_dir}")

        click.echo("\n" + "=" * 60)
        click.echo("[SUCCESS] RecallBin initialized successfully!")
        click.echo("=" * 60)

        if not gemini_api_key and not openai_api_key:
            click.echo(f"\n[WARNING] No AI provider key set. Add one to: {cm.env_file}")
            click.echo("          Saves will still work but get a placeholder summary")

        click.echo(f"\nAPI token (send as 'Authorization: Bearer <token>'): {token}")
        click.echo(f"Configuration directory: {cm.config_dir}")
        click.echo("\nStart the server with: recallbin serve")

    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--host", type=str, default=None, help="Host to bind (default: from config.yaml)")
@click.option("--port", type=int, default=None, help="Port to bind (default: from config.yaml)")
@click.option(
    "--reload",
    is_flag=True,
    default=False,
    help="Enable auto-reload for development",
)
@click.option(
    "--config-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration directory (default: ~/.recallbin)",
)
def serve(host: Optional[str], port: Optional[int], reload: bool, config_dir: Optional[Path]):
    """Start the RecallBin API server."""
    from .config import ConfigManager, ConfigError

    try:
        cm = ConfigManager(config_dir)

        if not cm.config_file.exists():
            click.echo("Error: Configuration not found", err=True)
            click.echo(f"Run 'recallbin init' to create configuration at {cm.config_dir}", err=True)
            sys.exit(1)

        if not cm.env_file.exists():
            click.echo("Error: .env file not found", err=True)
            click.echo(f"Run 'recallbin init' to create .env file at {cm.config_dir}", err=True)
            sys.exit(1)

        try:
            app_config = cm.load_app_config()
            cm.load_env_settings()
        except ConfigError as e:
            click.echo(f"Configuration error: {e}", err=True)
            sys.exit(1)

        # The app factory reads the directory from the environment
        os.environ["RECALLBIN_CONFIG_DIR"] = str(cm.config_dir)

        log_level = app_config.log_level.upper()
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        host = host or app_config.host
        port = port or app_config.port

        click.echo("=" * 60)
        click.echo("Starting RecallBin API server...")
        click.echo("=" * 60)
        click.echo(f"Config directory: {cm.config_dir}")
        click.echo(f"Environment: {app_config.environment}")
        click.echo(f"Server URL: http://{host}:{port}")
        click.echo(f"API docs: http://{host}:{port}/docs")
        click.echo("=" * 60)
        click.echo("\nPress Ctrl+C to stop the server\n")

        uvicorn.run(
            "recallbin.api:create_app",
            factory=True,
            host=host,
            port=port,
            reload=reload,
            log_level=log_level.lower(),
        )

    except KeyboardInterrupt:
        click.echo("\n\nShutting down server...")
        sys.exit(0)
    except Exception as e:
        click.echo(f"Error starting server: {e}", err=True)
        sys.exit(1)


def _is_placeholder_secret(value: Optional[str]) -> bool:
    """Detect placeholder/empty secret values that should be replaced."""
    if value is None:
        return True

    normalized = value.strip().lower()
    if not normalized:
        return True

    markers = (
        "your-",
        "replace-with",
        "<random",
        "example",
        "changeme",
    )
    return any(marker in normalized for marker in markers)


@cli.command()
@click.option(
    "--config-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Configuration directory (default: ~/.recallbin)",
)
@click.option(
    "--api-url",
    type=str,
    default=None,
    help="Optional running API URL to verify (example: http://127.0.0.1:5000)",
)
def doctor(config_dir: Optional[Path], api_url: Optional[str]):
    """Validate local setup and report actionable fixes."""
    from .config import ConfigManager, ConfigError

    cm = ConfigManager(config_dir)
    failures = 0
    warnings = 0
    app_config = None
    env_settings = None

    def report(status: str, message: str, fix: Optional[str] = None) -> None:
        click.echo(f"[{status}] {message}")
        if fix:
            click.echo(f"      Fix: {fix}")

    click.echo("=" * 60)
    click.echo("RecallBin doctor")
    click.echo("=" * 60)
    click.echo(f"Config directory: {cm.config_dir}")

    if cm.config_file.exists():
        report("PASS", f"Found config file: {cm.config_file}")
    else:
        failures += 1
        report("FAIL", f"Missing config file: {cm.config_file}", "Run: recallbin init")

    if cm.env_file.exists():
        report("PASS", f"Found env file: {cm.env_file}")
    else:
        failures += 1
        report("FAIL", f"Missing env file: {cm.env_file}", "Run: recallbin init")

    if cm.config_file.exists():
        try:
            app_config = cm.load_app_config()
            report("PASS", "config.yaml parsed successfully")
        except ConfigError as e:
            failures += 1
            report("FAIL", f"config.yaml validation failed: {e}")

    if cm.env_file.exists():
        try:
            env_settings = cm.load_env_settings()
            report("PASS", ".env parsed successfully")
        except ConfigError as e:
            failures += 1
            report("FAIL", f".env validation failed: {e}")

    if env_settings is not None:
        provider_keys = {
            "GEMINI_API_KEY": env_settings.gemini_api_key,
            "OPENAI_API_KEY": env_settings.openai_api_key,
            "AZURE_OPENAI_API_KEY": env_settings.azure_openai_api_key,
            "ANTHROPIC_API_KEY": env_settings.anthropic_api_key,
        }
        configured = [name for name, value in provider_keys.items() if not _is_placeholder_secret(value)]
        if configured:
            report("PASS", f"AI provider keys configured: {', '.join(configured)}")
        else:
            warnings += 1
            report(
                "WARN",
                "No AI provider key configured; saves will use the fallback summary",
                f"Set GEMINI_API_KEY in {cm.env_file}",
            )

        tokens_in_config = app_config.auth_tokens if app_config is not None else {}
        if _is_placeholder_secret(env_settings.recallbin_api_token) and not tokens_in_config:
            failures += 1
            report(
                "FAIL",
                "No API token configured; every request will be rejected",
                f"Set RECALLBIN_API_TOKEN in {cm.env_file}",
            )
        else:
            report("PASS", "API token looks configured")

    if app_config is not None:
        data_dir = cm.resolve_data_dir(app_config)
        if data_dir.is_dir() and os.access(data_dir, os.W_OK):
            report("PASS", f"Data directory is writable: {data_dir}")
        else:
            failures += 1
            report("FAIL", f"Data directory is missing or not writable: {data_dir}", "Run: recallbin init")

        if app_config.environment != "production":
            warnings += 1
            report(
                "WARN",
                "environment is 'development'; internal error details are returned to clients",
                "Set environment: production in config.yaml when exposing the API",
            )

    if api_url:
        health_url = f"{api_url.rstrip('/')}/api/health"
        try:
            response = httpx.get(health_url, timeout=3.0)
            if response.status_code == 200:
                report("PASS", f"Server is reachable: {health_url}")
            else:
                failures += 1
                report(
                    "FAIL",
                    f"Server health check returned HTTP {response.status_code}: {health_url}",
                    "Start server: recallbin serve",
                )
        except Exception as e:
            failures += 1
            report(
                "FAIL",
                f"Server is not reachable at {health_url} ({e})",
                "Start server and ensure API URL matches --api-url",
            )
    else:
        warnings += 1
        report("WARN", "Skipped server reachability check (no --api-url provided)")

    click.echo("-" * 60)
    click.echo(f"Summary: {failures} fail, {warnings} warn")

    if failures:
        sys.exit(1)
    sys.exit(0)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
