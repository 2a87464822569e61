import pytest

from spot_capacity_advisor.advisor import CapacityAdvisor
from spot_capacity_advisor.topology import RegionTopology
from spot_capacity_advisor.topology import ZoneTopology


TEST_REGIONS = {
    "us-central1": ["us-central1-a", "us-central1-b", "us-central1-c", "us-central1-f"],
    "us-east1": ["us-east1-b", "us-east1-c", "us-east1-d"],
    "europe-west4": ["europe-west4-a", "europe-west4-b", "europe-west4-c"],
    "single-zone1": ["single-zone1-a"],
}


@pytest.fixture(scope="session")
def test_topology() -> ZoneTopology:
    """An in-memory topology so tests never depend on the bundled file"""
    return ZoneTopology(RegionTopology(regions=TEST_REGIONS))


@pytest.fixture
def test_advisor(test_topology) -> CapacityAdvisor:
    return CapacityAdvisor(topology=test_topology)
