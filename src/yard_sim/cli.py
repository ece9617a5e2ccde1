"""yard-sim Command Line Interface.

Usage:
    yard validate <yard.json>         Validate a yard topology file
    yard run <yard.json>              Run a simulation against a topology
    yard schema                       Output JSON schema of the topology
"""

import argparse
import json
import logging
import sys
from pathlib import Path


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a yard topology JSON file."""
    from yard_sim.models.topology import load_yard
    from pydantic import ValidationError

    path = Path(args.yard)
    print(f"Validating: {path}")

    if not path.exists():
        print(f"ERROR: File not found: {path}", file=sys.stderr)
        return 1

    try:
        yard = load_yard(str(path))
        print("✓ Valid yard topology")
        print()
        print(yard.summary())

        unreachable = yard.unreachable_nodes()
        if unreachable:
            print()
            print(f"WARNING: {len(unreachable)} node(s) unreachable from {yard.entry_node}: "
                  + ", ".join(unreachable))
        return 0

    except json.JSONDecodeError as e:
        print(f"ERROR: Invalid JSON at line {e.lineno}: {e.msg}", file=sys.stderr)
        return 1

    except ValidationError as e:
        print("ERROR: Schema validation failed:", file=sys.stderr)
        for error in e.errors():
            loc = " -> ".join(str(x) for x in error["loc"])
            print(f"  {loc}: {error['msg']}", file=sys.stderr)
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Run a simulation and output results."""
    from pydantic import ValidationError

    from yard_sim.analysis.kpis import compute_yard_kpis
    from yard_sim.models.config import EngineConfig, load_config
    from yard_sim.models.topology import build_default_yard, load_yard
    from yard_sim.simulation.engine import YardEngine

    try:
        config = load_config(args.config) if args.config else EngineConfig()
        if args.seed is not None:
            config = config.model_copy(update={"random_seed": args.seed})
        _setup_logging(args.log_level or config.log_level)

        if args.yard:
            print(f"Loading: {args.yard}")
            yard = load_yard(args.yard)
        else:
            print("Using built-in default yard")
            yard = build_default_yard()

        print(f"Trains: {args.trains} (one every {args.interval:g}s)")
        print(f"Seed: {config.random_seed}")
        print()

        engine = YardEngine(yard, config)

        def arrivals():
            for _ in range(args.trains):
                engine.create_train()
                yield engine.env.timeout(args.interval)

        engine.env.process(arrivals())

        print("Running simulation...")
        event_log = engine.run(until=args.until)
        print(f"Simulation complete at t={engine.now:g}s: {len(event_log)} events logged")
        print()

        kpis = compute_yard_kpis(engine)
        print(kpis.summary())

        if args.output:
            output_dir = Path(args.output)
            output_dir.mkdir(parents=True, exist_ok=True)

            events_path = output_dir / "events.csv"
            event_log.to_dataframe().to_csv(events_path, index=False)
            print(f"\nEvents saved to: {events_path}")

            kpis_path = output_dir / "kpis.json"
            with open(kpis_path, "w") as f:
                json.dump(kpis.to_dict(), f, indent=2)
            print(f"KPIs saved to: {kpis_path}")

        return 0

    except (OSError, ValueError, ValidationError) as e:
        print(f"ERROR: {type(e).__name__}: {e}", file=sys.stderr)
        return 1


def cmd_schema(args: argparse.Namespace) -> int:
    """Output JSON schema for yard topology files."""
    from yard_sim.models.topology import YardDefinition

    schema = YardDefinition.model_json_schema(by_alias=True)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(schema, f, indent=2)
        print(f"Schema written to: {output_path}")
    else:
        print(json.dumps(schema, indent=2))

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yard",
        description="yard-sim: rail maintenance yard simulation",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # validate command
    p_validate = subparsers.add_parser(
        "validate",
        help="Validate a yard topology JSON file",
    )
    p_validate.add_argument("yard", help="Path to yard JSON file")
    p_validate.set_defaults(func=cmd_validate)

    # run command
    p_run = subparsers.add_parser(
        "run",
        help="Run simulation",
    )
    p_run.add_argument("yard", nargs="?", help="Path to yard JSON file (default: built-in yard)")
    p_run.add_argument("--trains", "-n", type=int, default=10, help="Number of arriving trains")
    p_run.add_argument("--interval", type=float, default=60.0, help="Seconds between arrivals")
    p_run.add_argument("--until", type=float, default=None, help="Stop at this simulation time (s)")
    p_run.add_argument("--seed", type=int, default=None, help="Override the random seed")
    p_run.add_argument("--config", "-c", help="Engine config JSON file")
    p_run.add_argument("--log-level", help="Override the configured log level")
    p_run.add_argument(
        "--output", "-o",
        help="Output directory for results",
    )
    p_run.set_defaults(func=cmd_run)

    # schema command
    p_schema = subparsers.add_parser(
        "schema",
        help="Output JSON schema",
    )
    p_schema.add_argument(
        "--output", "-o",
        help="Output file (default: stdout)",
    )
    p_schema.set_defaults(func=cmd_schema)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
