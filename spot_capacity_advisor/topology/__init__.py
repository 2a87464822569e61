import json
import logging
import os
from importlib import resources
from pathlib import Path
from typing import Dict
from typing import List
from typing import Optional
from typing import Union

from pydantic import BaseModel
from pydantic import field_validator

logger = logging.getLogger(__name__)

BUNDLED_TOPOLOGY = "regions.json"


class RegionTopology(BaseModel):
    """Ordered zones of every region, as supplied by the topology provider

    Zone order is significant, it is the order options are numbered in and
    the order balanced remainders are handed out in.
    """

    regions: Dict[str, List[str]] = {}

    @field_validator("regions")
    @classmethod
    def _non_empty_unique_zones(cls, value: Dict[str, List[str]]):
        for region, zones in value.items():
            if not zones:
                raise ValueError(f"Region {region} has no zones")
            if len(set(zones)) != len(zones):
                raise ValueError(f"Region {region} lists a zone more than once")
        return value


def load_topology(topology: Dict) -> RegionTopology:
    return RegionTopology(**topology)


def load_topology_from_disk(
    path: Union[Path, Optional[str]] = os.environ.get("ZONE_TOPOLOGY"),
) -> RegionTopology:
    if path is None:
        bundled = resources.files(__name__).joinpath(BUNDLED_TOPOLOGY)
        logger.info("Loading zone topology from %s", bundled)
        with bundled.open("r", encoding="utf-8") as fd:
            return load_topology(json.load(fd))

    logger.info("Loading zone topology from %s", path)
    with open(path, encoding="utf-8") as fd:
        return load_topology(json.load(fd))


class ZoneTopology:
    def __init__(self, topology: Optional[RegionTopology] = None):
        self._topology: Optional[RegionTopology] = topology

    def load(self, new_topology: RegionTopology) -> None:
        self._topology = new_topology

    @property
    def topology(self) -> RegionTopology:
        if self._topology is None:
            self._topology = load_topology_from_disk()
        return self._topology

    def regions(self) -> List[str]:
        return sorted(self.topology.regions)

    def zones(self, region: str) -> List[str]:
        if region not in self.topology.regions:
            raise KeyError(f"Unknown region {region}. Try {self.regions()}")
        return list(self.topology.regions[region])


topology: ZoneTopology = ZoneTopology()
