"""CLI entry point for lumen-assistant."""

from __future__ import annotations

import argparse
import sys

from lumen_assistant.config import AppConfig, load_config
from lumen_assistant.log import setup_logging


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="lumen-assistant",
        description="AI assistant endpoint with tool calling over the user's productivity data",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    for name, help_text in (
        ("serve", "Start the HTTP server"),
        ("config-check", "Validate configuration"),
        ("tools", "List the tools advertised to the model"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("-c", "--config", default="config.yaml", help="Path to config file")
        sub.add_argument("-e", "--env", default=".env", help="Path to .env file")

    args = parser.parse_args()

    if args.command is None:
        # Default to serve
        args.command = "serve"
        args.config = "config.yaml"
        args.env = ".env"

    if args.command == "config-check":
        _check_config(args.config, args.env)
    elif args.command == "tools":
        _list_tools(args.config, args.env)
    elif args.command == "serve":
        _serve(args.config, args.env)


def _load(config_path: str, env_path: str) -> AppConfig:
    try:
        return load_config(config_path, env_path)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Run 'python install.py' first or copy config.example.yaml to config.yaml")
        sys.exit(1)
    except Exception as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)


def _check_config(config_path: str, env_path: str) -> None:
    """Validate configuration and print summary."""
    config = _load(config_path, env_path)
    print(f"Configuration valid: {config_path}")
    print(f"  Data directory: {config.data_dir}")
    print(f"  Listen: {config.server.host}:{config.server.port}{config.server.path}")
    print(f"  AI backend: {config.ai.backend} ({config.ai.model})")
    print(f"  Timezone: {config.ai.timezone}")
    print(
        f"  Rate limit: {config.gateway.rate_limit_max_requests} requests / "
        f"{config.gateway.rate_limit_window_seconds}s"
    )
    print(f"  Image generation: {'enabled' if config.image.api_key else 'disabled'}")
    print(f"  Storage: {config.storage.db_path}")


def _list_tools(config_path: str, env_path: str) -> None:
    """Print every registered tool with its required arguments."""
    from lumen_assistant.app import AssistantApp

    config = _load(config_path, env_path)
    app = AssistantApp(config)
    app.tool_registry.discover_and_register(app.ai_client, app.image_generator, config.ai)

    print(f"Tools ({len(app.tool_registry)})")
    print("=" * 50)
    for tool in app.tool_registry.all_tools():
        schema = tool.input_schema
        required = schema.get("required", [])
        optional = [p for p in schema["properties"] if p not in required]
        print(f"\n  {tool.name}")
        print(f"    {tool.description}")
        if required:
            print(f"    required: {', '.join(required)}")
        if optional:
            print(f"    optional: {', '.join(optional)}")
    print()


def _serve(config_path: str, env_path: str) -> None:
    """Load config and run the HTTP server."""
    import uvicorn

    from lumen_assistant.web.server import create_app

    config = _load(config_path, env_path)
    setup_logging(config.log_level, config.log_format)

    app = create_app(config)
    uvicorn.run(app, host=config.server.host, port=config.server.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
