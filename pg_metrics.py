#!/usr/bin/env python3
"""
Command-line entrypoint for the PostgreSQL metric agent.

Resolves a single metric key against a database and prints the result on
stdout, the way the monitoring agent consumes it:

    pg_metrics.py pg.index.size "host=db1 user=monitor" appdb my_index
    pg_metrics.py pg.setting "" appdb max_connections
    pg_metrics.py pg.index.discovery "" appdb shallow public

Scalars are printed as plain text, discovery listings as JSON. On failure
the message is printed prefixed with ZBX_NOTSUPPORTED and the exit code is 1.


Unlike older agents, parameters beyond the ones a key declares are an error
rather than silently ignored.
"""

import argparse
import importlib
import logging
import pkgutil
import sys
from pathlib import Path

import yaml

from plugins.base import BasePlugin
from plugins.common.parameters import MetricRequest

try:
    APP_VERSION = (Path(__file__).parent / "VERSION").read_text().strip()
except FileNotFoundError:
    APP_VERSION = "unknown"

NOT_SUPPORTED = "ZBX_NOTSUPPORTED"

DEFAULT_SETTINGS = {
    'connect_timeout': 10,
    'statement_timeout': 30000,
    'application_name': 'pg_metrics',
    'log_level': 'WARNING',
    'log_file': None,
}

logger = logging.getLogger(__name__)


def discover_plugins():
    """Finds and loads all available plugins from the 'plugins' directory.

    Returns:
        dict: Loaded plugin instances, keyed by technology name.
    """
    plugins_path = Path(__file__).parent / "plugins"
    discovered_plugins = {}
    for _, name, is_pkg in pkgutil.iter_modules([str(plugins_path)]):
        if not is_pkg or name == "common":
            continue
        try:
            module = importlib.import_module(f'plugins.{name}')
        except ImportError as e:
            logger.warning(f"Could not import plugin '{name}'. Missing dependency: {e}. Skipping.")
            continue
        for item_name in dir(module):
            item = getattr(module, item_name)
            if isinstance(item, type) and issubclass(item, BasePlugin) and item is not BasePlugin:
                plugin_instance = item()
                discovered_plugins[plugin_instance.technology_name] = plugin_instance
                logger.debug(f"Discovered plugin: {plugin_instance.technology_name}")
    return discovered_plugins


def load_settings(config_file):
    """
    Loads the YAML configuration file on top of the defaults.

    A missing file is not an error; connection details then come from the
    request's connection string and the libpq environment.

    Raises:
        ValueError: If the file is not valid YAML or not a mapping.
    """
    settings = dict(DEFAULT_SETTINGS)
    path = Path(config_file)
    if not path.is_file():
        return settings

    try:
        with open(path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_file}: {e}")

    if not isinstance(loaded, dict):
        raise ValueError(f"Configuration file {config_file} must contain a mapping")

    settings.update(loaded)
    return settings


def setup_logging(settings, verbose=False):
    """Logs to stderr and, if configured, to a log file."""
    level_name = 'DEBUG' if verbose else str(settings.get('log_level') or 'WARNING').upper()
    log_level = getattr(logging, level_name, logging.WARNING)

    handlers = [logging.StreamHandler(sys.stderr)]
    log_file = settings.get('log_file')
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def find_plugin(plugins, key):
    for plugin in plugins.values():
        if plugin.supports_key(key):
            return plugin
    return None


def run(argv=None, stdout=None):
    """Parses arguments, resolves one metric key and prints the result.

    Returns:
        int: Process exit code.
    """
    stdout = stdout or sys.stdout
    parser = argparse.ArgumentParser(
        description='PostgreSQL metric agent',
        epilog='Each key accepts only the parameters it declares (see --list). Trailing '
               'non-empty parameters beyond those are rejected rather than ignored; drop '
               'them from existing item keys.'
    )
    parser.add_argument('--config', default='config/config.yaml', help='Path to configuration file')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--list', action='store_true', help='List supported metric keys and exit')
    parser.add_argument('--version', action='version', version=f'%(prog)s {APP_VERSION}')
    parser.add_argument('key', nargs='?', help='Metric key, e.g. pg.index.size')
    parser.add_argument('params', nargs='*', help='Connection string, database, then the metric parameters of the key')
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ValueError as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    setup_logging(settings, args.verbose)
    plugins = discover_plugins()

    if args.list:
        for plugin in plugins.values():
            for definition in plugin.get_engine(settings).list_metrics():
                print(f"{definition.key}\t{definition.description}", file=stdout)
        return 0

    if not args.key:
        parser.error("a metric key is required")

    plugin = find_plugin(plugins, args.key)
    if plugin is None:
        print(f"{NOT_SUPPORTED}: Unsupported metric key: {args.key}", file=stdout)
        return 1

    result = plugin.get_engine(settings).handle(MetricRequest(args.key, args.params))
    if not result.ok:
        logger.error(f"{args.key} failed: {result.message}")
        print(f"{NOT_SUPPORTED}: {result.format()}", file=stdout)
        return 1

    print(result.format(), file=stdout)
    return 0


def main():
    sys.exit(run())


if __name__ == '__main__':
    main()
