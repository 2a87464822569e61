import logging
from typing import Iterable
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Union

from spot_capacity_advisor.classifier import classify
from spot_capacity_advisor.interface import CapacityAdvisorResponse
from spot_capacity_advisor.interface import ConfigurationError
from spot_capacity_advisor.interface import DistributionStrategy
from spot_capacity_advisor.interface import MachineTypeDetails
from spot_capacity_advisor.interface import Recommendation
from spot_capacity_advisor.interface import Shard
from spot_capacity_advisor.interface import SimulationParameters
from spot_capacity_advisor.interface import ZoneMetric
from spot_capacity_advisor.metrics import score_zone
from spot_capacity_advisor.stats import weighted_mean
from spot_capacity_advisor.topology import topology as default_topology
from spot_capacity_advisor.topology import ZoneTopology

logger = logging.getLogger(__name__)


def parse_strategy(strategy: Union[DistributionStrategy, str]) -> DistributionStrategy:
    """Accepts a strategy member, its value or its name in any case"""
    if isinstance(strategy, DistributionStrategy):
        return strategy
    if isinstance(strategy, str):
        key = strategy.strip()
        for member in DistributionStrategy:
            if key.upper() == member.value or key.lower() == member.name:
                return member
    raise ConfigurationError(
        f"strategy={strategy!r} is not a distribution strategy. "
        f"Try {[s.value for s in DistributionStrategy]}"
    )


def _validate(total_count: int, zones: Sequence[str]) -> None:
    if isinstance(total_count, bool) or not isinstance(total_count, int):
        raise ConfigurationError(f"count must be an integer, got {total_count!r}")
    if total_count < 0:
        raise ConfigurationError(f"count must be >= 0, got {total_count}")
    if not zones:
        raise ConfigurationError("At least one zone is required to place instances")
    if len(set(zones)) != len(zones):
        raise ConfigurationError(f"zones must be unique, got {list(zones)}")


def split_evenly(total_count: int, num_zones: int) -> List[int]:
    """Splits a count across zones so that no two shares differ by more than 1

    The remainder goes one unit at a time to the first zones, e.g.
    10 over 4 zones is [3, 3, 2, 2].
    """
    if num_zones <= 0:
        raise ConfigurationError("At least one zone is required to place instances")
    base, remainder = divmod(total_count, num_zones)
    return [base + 1 if i < remainder else base for i in range(num_zones)]


def aggregate(metrics: Sequence[ZoneMetric], counts: Sequence[int]) -> ZoneMetric:
    """Count weighted mean of per-zone metrics, zones with no instances drop out"""
    total = sum(counts)
    # Weights are shares of the total, raw counts may not fit in a float
    shares = [count / total for count in counts] if total else list(counts)
    return ZoneMetric(
        obtainability=weighted_mean([m.obtainability for m in metrics], shares),
        uptime=weighted_mean([m.uptime for m in metrics], shares),
    )


def sort_recommendations(
    recommendations: Iterable[Recommendation],
) -> List[Recommendation]:
    """Orders by descending obtainability, equal scores keep their zone order"""
    # sorted is stable, also with reverse=True
    return sorted(recommendations, key=lambda r: r.obtainability, reverse=True)


def _recommendation(
    metric: ZoneMetric, shape: str, placement: Sequence[Tuple[str, int]]
) -> Recommendation:
    return Recommendation(
        scores=metric.as_scores(),
        shards=[
            Shard(location=zone, machine_type=shape, count=count)
            for zone, count in placement
        ],
    )


class CapacityAdvisor:
    def __init__(
        self,
        parameters: Optional[SimulationParameters] = None,
        topology: Optional[ZoneTopology] = None,
    ):
        self._parameters = parameters or SimulationParameters()
        self._topology = topology or default_topology

    @property
    def parameters(self) -> SimulationParameters:
        return self._parameters

    @property
    def topology(self) -> ZoneTopology:
        return self._topology

    def score_zone(self, shape: str, region: str, zone: str, count: int) -> ZoneMetric:
        family, generation = classify(shape)
        return score_zone(
            family,
            generation,
            shape,
            region,
            zone,
            count,
            parameters=self._parameters,
        )

    def assemble(  # pylint: disable=too-many-positional-arguments
        self,
        region: str,
        shape: str,
        total_count: int,
        strategy: Union[DistributionStrategy, str],
        zones: Sequence[str],
        machine_details: Optional[MachineTypeDetails] = None,
    ) -> CapacityAdvisorResponse:
        """Scores the placement options for ``total_count`` x ``shape``

        Compare strategies (ANY, ANY_SINGLE_ZONE) yield one single-shard
        recommendation per zone holding the whole request. BALANCED yields
        exactly one recommendation with a shard per zone. Either way the
        recommendations come back sorted by descending obtainability.
        """
        strategy = parse_strategy(strategy)
        _validate(total_count, zones)
        zones = list(zones)
        if machine_details is not None:
            logger.debug("Assembling for %s (%s)", shape, machine_details)

        # The whole request in each zone, needed by both modes
        singles = [self.score_zone(shape, region, z, total_count) for z in zones]

        if strategy.is_compare:
            recommendations = [
                _recommendation(metric, shape, [(zone, total_count)])
                for zone, metric in zip(zones, singles)
            ]
        else:
            recommendations = [
                self._balanced(region, shape, total_count, zones, singles)
            ]

        logger.debug(
            "Assembled %d %s recommendation(s) for %dx %s in %s",
            len(recommendations),
            strategy,
            total_count,
            shape,
            region,
        )
        return CapacityAdvisorResponse(
            recommendations=sort_recommendations(recommendations)
        )

    def _balanced(  # pylint: disable=too-many-positional-arguments
        self,
        region: str,
        shape: str,
        total_count: int,
        zones: List[str],
        singles: List[ZoneMetric],
    ) -> Recommendation:
        counts = split_evenly(total_count, len(zones))
        per_zone = [
            self.score_zone(shape, region, zone, count)
            for zone, count in zip(zones, counts)
        ]
        metric = aggregate(per_zone, counts)

        # A split never scores below the best option that puts the whole
        # request in one zone
        best_single = max(singles, key=lambda m: m.obtainability)
        if best_single.obtainability > metric.obtainability:
            logger.debug(
                "Balanced %s split %s scored %.4f, flooring to best single zone %.4f",
                shape,
                counts,
                metric.obtainability,
                best_single.obtainability,
            )
            metric = best_single

        return _recommendation(metric, shape, list(zip(zones, counts)))

    def advise(
        self,
        region: str,
        shape: str,
        total_count: int,
        strategy: Union[DistributionStrategy, str] = DistributionStrategy.any,
    ) -> CapacityAdvisorResponse:
        """Like assemble, with the zones looked up in the region topology"""
        return self.assemble(
            region=region,
            shape=shape,
            total_count=total_count,
            strategy=strategy,
            zones=self._topology.zones(region),
        )


advisor: CapacityAdvisor = CapacityAdvisor()


def assemble(  # pylint: disable=too-many-positional-arguments
    region: str,
    shape: str,
    total_count: int,
    strategy: Union[DistributionStrategy, str],
    zones: Sequence[str],
    machine_details: Optional[MachineTypeDetails] = None,
) -> CapacityAdvisorResponse:
    return advisor.assemble(
        region, shape, total_count, strategy, zones, machine_details=machine_details
    )
