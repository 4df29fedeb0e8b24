"""
Engine administration tool.

Creates a sample genesis file, initializes an engine database from one, and
prints the state of an existing database or exports it as Prometheus metrics.
Genesis is an auditable, one-shot step: it refuses to touch a database
directory that already exists.
"""
import argparse
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

from synthvault.config import Config
from synthvault.constants import TOKEN_UNIT
from synthvault.crypto import (
    generate_key_pair,
    public_key_to_address,
    serialize_private_key,
    serialize_public_key,
)
from synthvault.db import DB
from synthvault.engine import SynthEngine
from synthvault.errors import ProtocolError
from synthvault.host import ExecutionContext
from synthvault.monitoring import Monitor

logger = logging.getLogger(__name__)


def create_genesis(genesis_path: str, output_db_path: str, config: Config = None) -> dict:
    """
    Initializes an engine database from a genesis JSON file.

    Args:
        genesis_path (str): Path to the genesis configuration JSON file.
        output_db_path (str): Path for the new engine database.
        config (Config): Engine configuration; defaults apply when omitted.

    Returns:
        The engine stats after genesis.
    """
    config = config or Config.default()
    logger.info(f"Loading genesis configuration from: {genesis_path}")
    with open(genesis_path, 'r') as f:
        genesis = json.load(f)

    db_path = Path(output_db_path)
    if db_path.exists():
        raise FileExistsError(f"Output database path '{db_path}' already exists")

    administrator = bytes.fromhex(genesis['administrator'])
    db = DB.from_config(replace(config.database, path=str(db_path)))
    with SynthEngine(db=db, administrator=administrator, config=config.protocol) as engine:
        accounts = genesis.get('pre_funded_accounts', [])
        for account_info in accounts:
            address = bytes.fromhex(account_info['address'])
            engine.credit_native(address, int(account_info['balance_native']) * TOKEN_UNIT)
        logger.info(f"Funded {len(accounts)} accounts.")

        initial_price = genesis.get('initial_price')
        if initial_price is not None:
            ctx = ExecutionContext(caller=administrator, height=int(genesis.get('initial_height', 0)))
            engine.update_price(ctx, int(initial_price))

        stats = engine.get_stats()

    logger.info(f"Engine database initialized at: {db_path}")
    return stats


def generate_sample_genesis(output_path: str) -> dict:
    """Writes a sample genesis.json and returns the generated private keys."""
    admin_priv, admin_pub = generate_key_pair()
    admin_addr = public_key_to_address(serialize_public_key(admin_pub)).hex()

    user_priv, user_pub = generate_key_pair()
    user_addr = public_key_to_address(serialize_public_key(user_pub)).hex()

    genesis = {
        "administrator": admin_addr,
        "pre_funded_accounts": [
            {"address": admin_addr, "balance_native": 1000},
            {"address": user_addr, "balance_native": 500000},
        ],
        "initial_price": 100,
        "initial_height": 0,
    }

    with open(output_path, 'w') as f:
        json.dump(genesis, f, indent=2)

    logger.info(f"Generated sample genesis configuration at: {output_path}")
    return {
        admin_addr: serialize_private_key(admin_priv),
        user_addr: serialize_private_key(user_priv),
    }


def build_monitor(config: Config):
    """Returns a metrics exporter when monitoring is enabled, otherwise None."""
    if not config.monitoring.enabled:
        return None
    return Monitor(host=config.monitoring.host, port=config.monitoring.port, serve=True)


def open_engine(db_path: str, config: Config, monitor=None) -> SynthEngine:
    if not Path(db_path).exists():
        raise FileNotFoundError(f"No engine database at '{db_path}'")
    config.protocol.validate()
    db = DB(db_path, create_if_missing=False)
    return SynthEngine(db=db, config=config.protocol, monitor=monitor)


def engine_status(db_path: str, config: Config = None) -> dict:
    config = config or Config.default()
    with open_engine(db_path, config) as engine:
        return {'stats': engine.get_stats(), 'audit': engine.audit()}


def serve_metrics(db_path: str, config: Config, interval: float = 15.0, iterations: int = None) -> Monitor:
    """
    Exports engine gauges over HTTP, refreshing them every `interval` seconds.

    Runs until interrupted, or for `iterations` refreshes when given.
    """
    if not config.monitoring.enabled:
        raise ValueError("Monitoring is disabled in the configuration")

    monitor = build_monitor(config)
    try:
        with open_engine(db_path, config, monitor) as engine:
            refreshes = 0
            while iterations is None or refreshes < iterations:
                monitor.update()
                refreshes += 1
                logger.debug(f"Metrics refreshed from {engine.db.path}")
                if iterations is None or refreshes < iterations:
                    time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("Metrics exporter interrupted.")
    finally:
        monitor.stop_server()
    return monitor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Synthetic-asset engine tool")
    parser.add_argument("--config", type=str, default=None, help="Path to engine config JSON")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parser_sample = subparsers.add_parser("sample-config", help="Generate a sample genesis.json")
    parser_sample.add_argument("--output", type=str, default="genesis.json", help="Output file path")

    parser_genesis = subparsers.add_parser("genesis", help="Initialize an engine database from a genesis file")
    parser_genesis.add_argument("--genesis", type=str, default="genesis.json", help="Path to genesis file")
    parser_genesis.add_argument("--output-db", type=str, default=None, help="Path for the new database")

    parser_status = subparsers.add_parser("status", help="Print stats and invariant audit as JSON")
    parser_status.add_argument("--db", type=str, default=None, help="Path to the engine database")

    parser_metrics = subparsers.add_parser("metrics", help="Serve engine metrics for Prometheus")
    parser_metrics.add_argument("--db", type=str, default=None, help="Path to the engine database")
    parser_metrics.add_argument("--interval", type=float, default=15.0, help="Seconds between gauge refreshes")

    return parser


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args(argv)
    config = Config.from_file(args.config) if args.config else Config.default()

    try:
        if args.command == "sample-config":
            keys = generate_sample_genesis(args.output)
            print("Sample private keys (DO NOT USE IN PRODUCTION):")
            for address, pem in keys.items():
                print(f"  - Address {address}:\n{pem}")
        elif args.command == "genesis":
            stats = create_genesis(args.genesis, args.output_db or config.database.path, config)
            print(json.dumps(stats, indent=2))
        elif args.command == "status":
            print(json.dumps(engine_status(args.db or config.database.path, config), indent=2))
        elif args.command == "metrics":
            serve_metrics(args.db or config.database.path, config, args.interval)
    except (OSError, ValueError, KeyError, ProtocolError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
