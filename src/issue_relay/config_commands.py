"""Configuration commands for the issue-relay CLI."""

import os
import sys

from cyclopts import App

from issue_relay.config import SETTINGS_BY_KEY, Config, get_config, resolve_settings, setting_spec

config_app = App(name="config", help="Show and change issue-relay settings")

MASK = "********"


def _display(key: str, value: object) -> str:
    spec = SETTINGS_BY_KEY.get(key)
    if spec is not None and spec.secret and value:
        return MASK
    return str(value)


def _open(global_: bool) -> Config:
    try:
        return get_config(use_global=global_)
    except ValueError as e:
        _fail(str(e))


def _fail(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)
    raise SystemExit(1)


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Set a setting in the local or global config file.

    Args:
        key: Setting key, e.g. linear.api_key, server.port or traces.backend
        value: Setting value
        global_: Write to ~/.issue-relay instead of ./.issue-relay
    """
    config = _open(global_)
    try:
        stored = config.set(key, value)
    except ValueError as e:
        _fail(str(e))
    print(f"Set {key} = {_display(key, stored)} ({config.scope})")

    env_var = SETTINGS_BY_KEY[key].env_var
    if os.environ.get(env_var):
        print(f"Note: {env_var} is set and takes precedence over the config file")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Remove a setting from the local or global config file.

    Args:
        key: Setting key
        global_: Remove from ~/.issue-relay instead of ./.issue-relay
    """
    config = _open(global_)
    if config.unset(key):
        print(f"Unset {key} ({config.scope})")
    else:
        print(f"{key} is not set in the {config.scope} config")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Show a setting and where its value comes from.

    Args:
        key: Setting key
        global_: Read the global config only
    """
    try:
        spec = setting_spec(key)
    except ValueError as e:
        _fail(str(e))
    config = _open(global_)

    env_value = os.environ.get(spec.env_var)
    if env_value:
        print(f"{key} = {_display(key, env_value)} (env {spec.env_var})")
        return

    value = config.get(key)
    if value is None:
        print(f"{key} is not set")
    else:
        print(f"{key} = {_display(key, value)} ({config.source(key)})")


@config_app.command(name="list")
def list_config(global_: bool = False, all_: bool = False) -> None:
    """List the effective settings.

    Args:
        global_: Read the global config only
        all_: Include settings left at their defaults
    """
    config = _open(global_)
    try:
        resolved = resolve_settings(config, os.environ)
    except ValueError as e:
        _fail(str(e))

    shown = [item for item in resolved if all_ or item.source != "default"]
    if not shown:
        print(f"No {config.scope} configuration settings")
    else:
        print("Settings:\n")
        for item in shown:
            value = "(not set)" if item.value is None else _display(item.spec.key, item.value)
            print(f"{item.spec.key} = {value} ({item.source})")

    for key in config.unknown_keys():
        print(f"Warning: unknown setting {key} in config file", file=sys.stderr)
