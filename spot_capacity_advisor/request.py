"""Request body for the provider's capacity advice endpoint

Only the payload is built here, sending it (auth, rate limiting, retries)
belongs to the API client the caller composes around the engine.
"""

from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence
from typing import Union

from spot_capacity_advisor.advisor import parse_strategy
from spot_capacity_advisor.interface import ConfigurationError
from spot_capacity_advisor.interface import DistributionStrategy
from spot_capacity_advisor.interface import ProvisioningModel
from spot_capacity_advisor.interface import WireModel

PRIMARY_SELECTION = "primary"


class Scheduling(WireModel):
    provisioning_model: ProvisioningModel = ProvisioningModel.spot


class InstanceProperties(WireModel):
    scheduling: Scheduling = Scheduling()


class InstanceSelection(WireModel):
    machine_types: List[str]
    rank: Optional[int] = None


class InstanceFlexibilityPolicy(WireModel):
    instance_selections: Dict[str, InstanceSelection]


class LocationPolicy(WireModel):
    target_shape: DistributionStrategy
    locations: Optional[List[str]] = None


class CapacityAdvisorRequest(WireModel):
    instance_properties: InstanceProperties = InstanceProperties()
    instance_flexibility_policy: InstanceFlexibilityPolicy
    location_policy: LocationPolicy
    count: int

    def model_dump(self, *args, **kwargs):
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(*args, **kwargs)

    def model_dump_json(self, *args, **kwargs):
        kwargs.setdefault("exclude_none", True)
        return super().model_dump_json(*args, **kwargs)


def build_capacity_advisor_request(
    shape: str,
    count: int,
    strategy: Union[DistributionStrategy, str] = DistributionStrategy.any,
    locations: Optional[Sequence[str]] = None,
) -> CapacityAdvisorRequest:
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ConfigurationError(f"count must be an integer >= 0, got {count!r}")
    return CapacityAdvisorRequest(
        instance_flexibility_policy=InstanceFlexibilityPolicy(
            instance_selections={
                PRIMARY_SELECTION: InstanceSelection(machine_types=[shape], rank=1)
            }
        ),
        location_policy=LocationPolicy(
            target_shape=parse_strategy(strategy),
            locations=list(locations) if locations is not None else None,
        ),
        count=count,
    )
