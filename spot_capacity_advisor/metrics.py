import logging
import math

from spot_capacity_advisor.classifier import gcp_size
from spot_capacity_advisor.classifier import normalize_shape
from spot_capacity_advisor.interface import ConfigurationError
from spot_capacity_advisor.interface import Generation
from spot_capacity_advisor.interface import ResourceFamily
from spot_capacity_advisor.interface import SimulationParameters
from spot_capacity_advisor.interface import ZoneMetric
from spot_capacity_advisor.stats import decay
from spot_capacity_advisor.stats import jitter
from spot_capacity_advisor.stats import stable_unit
from spot_capacity_advisor.stats import survival

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS = SimulationParameters()


def size_factor(
    shape: str,
    parameters: SimulationParameters = DEFAULT_PARAMETERS,
) -> float:
    """How much smaller the pool is for shapes above the reference size

    Large shapes need whole hosts (or whole GPU trays) so fewer of them fit
    into the same spare capacity. Shapes at or below the reference size get
    the full family depth, the factor never exceeds 1.
    """
    size, accelerators = gcp_size(shape)
    if accelerators:
        reference = parameters.reference_accelerators
    else:
        reference = parameters.reference_vcpus
    if size <= reference:
        return 1.0
    return math.sqrt(reference / float(size))


def pool_depth(  # pylint: disable=too-many-positional-arguments
    family: ResourceFamily,
    shape: str,
    region: str,
    zone: str,
    parameters: SimulationParameters = DEFAULT_PARAMETERS,
) -> float:
    """Effective number of instances of ``shape`` the zone's spot pool holds

    The zone-to-zone variation is a pure hash of (region, zone, family,
    shape), never a random draw, so every process sees the same depth.
    """
    unit = stable_unit(region, zone, str(family), normalize_shape(shape))
    depth = (
        parameters.pool_depth[family]
        * size_factor(shape, parameters)
        * jitter(unit, parameters.pool_depth_jitter)
    )
    return max(depth, parameters.minimum_pool_depth)


def demand_multiplier(
    family: ResourceFamily,
    generation: Generation,
    parameters: SimulationParameters = DEFAULT_PARAMETERS,
) -> float:
    return (
        parameters.family_multiplier[family]
        * parameters.generation_multiplier[generation]
    )


def scarcity_ratio(  # pylint: disable=too-many-positional-arguments
    family: ResourceFamily,
    generation: Generation,
    shape: str,
    region: str,
    zone: str,
    count: int,
    parameters: SimulationParameters = DEFAULT_PARAMETERS,
) -> float:
    """Requested demand relative to the zone's effective pool depth"""
    try:
        demand = count * demand_multiplier(family, generation, parameters)
    except OverflowError:
        # The count does not even fit in a float, no pool is that deep
        return math.inf
    return demand / pool_depth(family, shape, region, zone, parameters)


def score_zone(  # pylint: disable=too-many-positional-arguments
    family: ResourceFamily,
    generation: Generation,
    shape: str,
    region: str,
    zone: str,
    count: int,
    parameters: SimulationParameters = DEFAULT_PARAMETERS,
) -> ZoneMetric:
    """Obtainability and uptime of ``count`` spot instances of ``shape`` in a zone

    Obtainability decays with the scarcity ratio. Uptime starts from
    obtainability and adds back the share of instances expected to survive
    the uptime window, which shrinks as contention rises, so uptime sits
    above obtainability when capacity is plentiful and converges to it as
    the pool runs dry.
    """
    if isinstance(count, bool) or not isinstance(count, int):
        raise ConfigurationError(f"count must be an integer, got {count!r}")
    if count < 0:
        raise ConfigurationError(f"count must be >= 0, got {count}")
    if count == 0:
        return ZoneMetric(obtainability=1.0, uptime=1.0)

    ratio = scarcity_ratio(
        family, generation, shape, region, zone, count, parameters=parameters
    )
    if math.isinf(ratio):
        logger.debug("%s demand in %s/%s saturates the pool", shape, region, zone)
        return ZoneMetric(obtainability=0.0, uptime=0.0)
    obtainability = decay(
        ratio, shape=parameters.decay_shape, scale=parameters.decay_scale
    )

    hazard = parameters.preemption_rate[family] * (1 + parameters.contention * ratio)
    retained = survival(hazard, parameters.uptime_window_hours)
    uptime = min(1.0, obtainability + (1.0 - obtainability) * retained)

    logger.debug(
        "Scored %dx %s in %s/%s: ratio=%.4f obtainability=%.4f uptime=%.4f",
        count,
        shape,
        region,
        zone,
        ratio,
        obtainability,
        uptime,
    )
    return ZoneMetric(obtainability=obtainability, uptime=uptime)
