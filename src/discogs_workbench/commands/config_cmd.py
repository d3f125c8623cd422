"""Configuration management commands."""

import typer
from pydantic import ValidationError

from .. import config
from ..output import print_dict, print_success, print_error, print_json
from ..main import state


app = typer.Typer(help="Configuration management")


@app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key (e.g. mode, site-url)"),
    value: str = typer.Argument(..., help="Configuration value"),
) -> None:
    """Set a configuration value.

    Any setting can be stored, for example:
    - mode: explore or showcase
    - site-url: origin the dataset pack is published on
    - load-timeout-seconds: dataset load timeout

    Configuration is saved to ~/.discogs-workbench/config.yaml
    """
    try:
        path = config.set_config_value(key, value)
    except ValidationError as e:
        print_error(f"Invalid value for {key}: {e.errors()[0]['msg']}")
        raise typer.Exit(1)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if state.json_output:
        print_json({"success": True, "key": key, "file": str(path)})
    else:
        print_success(f"Configuration updated: {key} = {value}")
        print_success(f"Saved to: {path}")


@app.command("show")
def show_config() -> None:
    """Show current configuration.

    Displays the effective configuration from all sources:
    1. Environment variables (highest priority)
    2. .env file
    3. Config file (~/.discogs-workbench/config.yaml)
    4. Defaults
    """
    settings = config.get_settings()
    data = settings.model_dump(mode="json")
    data["manifest_url"] = settings.manifest_url

    if state.json_output:
        print_json(data)
    else:
        print_dict(data, title="Current Configuration")

        if config.CONFIG_FILE.exists():
            print_success(f"\nConfig file: {config.CONFIG_FILE}")
        else:
            print_error(f"\nConfig file not found: {config.CONFIG_FILE}")
