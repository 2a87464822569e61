import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any
from typing import List
from typing import Optional
from typing import Sequence

from spot_capacity_advisor.advisor import CapacityAdvisor
from spot_capacity_advisor.interface import DistributionStrategy
from spot_capacity_advisor.interface import SimulationParameters
from spot_capacity_advisor.summary import summarize
from spot_capacity_advisor.topology import load_topology_from_disk
from spot_capacity_advisor.topology import ZoneTopology


def parse_zones(value: str) -> List[str]:
    zones = [z.strip() for z in value.split(",") if z.strip()]
    if not zones:
        raise argparse.ArgumentTypeError(
            "zones should be a comma separated list like us-central1-a,us-central1-b"
        )
    return zones


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spot-advise",
        description=(
            "Score how likely N spot instances of a machine shape can be "
            "obtained in each zone of a region"
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--region", required=True, help="Region, e.g. us-central1")
    parser.add_argument("--count", type=int, default=1, help="Instances requested")
    parser.add_argument(
        "--strategy",
        default=DistributionStrategy.any.value,
        choices=[s.value for s in DistributionStrategy],
        type=str.upper,
    )
    parser.add_argument(
        "--zones",
        type=parse_zones,
        default=None,
        help=(
            "Comma separated zones in the order options should be numbered. "
            "Defaults to the region's zones from the topology"
        ),
    )
    parser.add_argument(
        "--topology",
        type=Path,
        default=None,
        help="JSON file of region -> zones, defaults to the bundled topology",
    )
    parser.add_argument(
        "--uptime-window",
        default=SimulationParameters().uptime_window,
        help="ISO 8601 duration uptime is modeled over",
    )
    parser.add_argument(
        "--summary", action="store_true", help="Also print the headline summary"
    )
    parser.add_argument("--debug", action="store_true", help="Show verbose output")
    parser.add_argument("shape", help="Machine shape, e.g. n2-standard-4")
    return parser


def run(args: Any) -> int:
    if args.debug:
        logging.basicConfig(level=logging.DEBUG)

    try:
        topology = ZoneTopology()
        if args.topology is not None:
            topology.load(load_topology_from_disk(args.topology))
        advisor = CapacityAdvisor(
            parameters=SimulationParameters(uptime_window=args.uptime_window),
            topology=topology,
        )
        zones = args.zones or topology.zones(args.region)
        response = advisor.assemble(
            region=args.region,
            shape=args.shape,
            total_count=args.count,
            strategy=args.strategy,
            zones=zones,
        )
    except (KeyError, OSError, ValueError) as exp:
        print(f"ERROR: {exp}", file=sys.stderr)
        return 1

    output = {"response": response.model_dump(mode="json")}
    if args.summary:
        output["summary"] = summarize(response).model_dump(mode="json")
    print(json.dumps(output, indent=2))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    return run(build_parser().parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
