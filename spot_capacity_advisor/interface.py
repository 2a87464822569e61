from __future__ import annotations

from datetime import timedelta
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple

import isodate  # type: ignore
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic.alias_generators import to_camel

from spot_capacity_advisor.enum_utils import enum_docstrings
from spot_capacity_advisor.enum_utils import StrEnum


class ConfigurationError(ValueError):
    """Raised synchronously when the caller hands the engine invalid inputs

    For example an empty zone list, a negative instance count or a
    distribution strategy the engine does not know about.
    """


class WireModel(BaseModel):
    """Models that are exchanged with the rendering layer use camelCase keys

    Python code uses the snake_case attribute names, ``model_dump`` and
    ``model_dump_json`` default to the camelCase aliases.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    def model_dump(self, *args, **kwargs):
        kwargs.setdefault("by_alias", True)
        return super().model_dump(*args, **kwargs)

    def model_dump_json(self, *args, **kwargs):
        kwargs.setdefault("by_alias", True)
        return super().model_dump_json(*args, **kwargs)


###############################################################################
#              Models (structs) for how we describe machine shapes            #
###############################################################################


@enum_docstrings
class ResourceFamily(StrEnum):
    """Coarse resource family of a machine shape, derived from its series"""

    general_purpose = "General Purpose"
    """Balanced price/performance series such as E2, N1, N2, N4, C3 or T2A"""

    compute_optimized = "Compute Optimized"
    """Highest per-core performance series such as C2, C2D or H3"""

    memory_optimized = "Memory Optimized"
    """Memory dense series such as M1, M2, M3 or X4"""

    accelerator_optimized = "Accelerator Optimized"
    """GPU attached series such as A2, A3 or G2, the scarcest pools"""

    storage_optimized = "Storage Optimized"
    """Local SSD dense series such as Z3"""


@enum_docstrings
class Generation(StrEnum):
    """Hardware generation tier of a machine series"""

    legacy = "Legacy"
    """Any series before the 4th generation, deep and mature spot pools"""

    modern = "Modern"
    """4th generation series (N4, C4, M4, A4, ...), still ramping capacity"""


@enum_docstrings
class Architecture(StrEnum):
    """CPU architecture of a machine series"""

    x86 = "x86"
    """Intel and AMD based series"""

    arm = "Arm"
    """Ampere and Axion based series such as T2A or C4A"""


class MachineShape(BaseModel):
    """Everything the engine can tell about a shape from its identifier alone"""

    name: str
    series: str
    family: ResourceFamily = ResourceFamily.general_purpose
    generation: Generation = Generation.legacy
    architecture: Architecture = Architecture.x86
    # vCPUs, or accelerators for "-<n>g" shapes, fractional for shared-core
    size: float = 1.0
    model_config = ConfigDict(frozen=True)


class MachineTypeDetails(BaseModel):
    """Descriptive fields supplied by the shape metadata provider

    The engine never scores on these, they are accepted so callers can hand
    over whatever they render next to the results.
    """

    name: str
    description: Optional[str] = None
    cores: Optional[int] = None
    memory_gib: Optional[float] = None
    model_config = ConfigDict(frozen=True)


###############################################################################
#              Models (structs) for requests and recommendations             #
###############################################################################


@enum_docstrings
class DistributionStrategy(StrEnum):
    """How a request for N instances may be placed across a region's zones"""

    any = "ANY"
    """Any single zone will do, compare every zone side by side"""

    any_single_zone = "ANY_SINGLE_ZONE"
    """All instances must share one zone, scored exactly like ``any``"""

    balanced = "BALANCED"
    """Split the request evenly across every zone of the region"""

    @property
    def is_compare(self) -> bool:
        return self is not DistributionStrategy.balanced


@enum_docstrings
class ProvisioningModel(StrEnum):
    """Provisioning model of the requested instances"""

    spot = "SPOT"
    """Preemptible capacity, the only model the engine scores"""

    standard = "STANDARD"
    """On-demand capacity, only ever used in request payloads"""


@enum_docstrings
class ScoreName(StrEnum):
    """Names of the scores reported on a recommendation"""

    obtainability = "obtainability"
    """Modeled probability that the placement can be fulfilled right now"""

    uptime = "uptime"
    """Modeled probability that the placement survives the reference window"""


class ZoneMetric(BaseModel):
    obtainability: float = Field(ge=0, le=1)
    uptime: float = Field(ge=0, le=1)
    model_config = ConfigDict(frozen=True)

    def as_scores(self) -> List[Score]:
        return [
            Score(name=ScoreName.obtainability, value=self.obtainability),
            Score(name=ScoreName.uptime, value=self.uptime),
        ]


class Score(WireModel):
    name: ScoreName
    value: float


class Shard(WireModel):
    """The portion of a request placed in one zone"""

    location: str
    machine_type: str
    count: int = Field(ge=0)
    provisioning_model: ProvisioningModel = ProvisioningModel.spot


class Recommendation(WireModel):
    """One placement option: one shard (single zone) or many (balanced)"""

    scores: List[Score]
    shards: List[Shard]

    def score(self, name: ScoreName) -> float:
        for s in self.scores:
            if s.name == name:
                return s.value
        return 0.0

    @property
    def obtainability(self) -> float:
        return self.score(ScoreName.obtainability)

    @property
    def uptime(self) -> float:
        return self.score(ScoreName.uptime)

    @property
    def total_count(self) -> int:
        return sum(shard.count for shard in self.shards)

    @property
    def locations(self) -> Tuple[str, ...]:
        return tuple(shard.location for shard in self.shards)

    @property
    def is_split(self) -> bool:
        return len(self.shards) > 1


class CapacityAdvisorResponse(WireModel):
    # Ordered by descending obtainability, see advisor.sort_recommendations
    recommendations: List[Recommendation] = []


###############################################################################
#              Models (structs) for how we tune the simulation               #
###############################################################################


def _default_pool_depth() -> Dict[ResourceFamily, float]:
    return {
        ResourceFamily.general_purpose: 320.0,
        ResourceFamily.compute_optimized: 180.0,
        ResourceFamily.memory_optimized: 70.0,
        ResourceFamily.storage_optimized: 90.0,
        ResourceFamily.accelerator_optimized: 40.0,
    }


def _default_family_multiplier() -> Dict[ResourceFamily, float]:
    return {
        ResourceFamily.general_purpose: 1.0,
        ResourceFamily.compute_optimized: 1.15,
        ResourceFamily.memory_optimized: 1.35,
        ResourceFamily.storage_optimized: 1.25,
        ResourceFamily.accelerator_optimized: 2.5,
    }


def _default_generation_multiplier() -> Dict[Generation, float]:
    return {Generation.legacy: 1.0, Generation.modern: 1.6}


def _default_preemption_rate() -> Dict[ResourceFamily, float]:
    # Preemptions per instance-hour with no contention at all
    return {
        ResourceFamily.general_purpose: 0.004,
        ResourceFamily.compute_optimized: 0.005,
        ResourceFamily.memory_optimized: 0.006,
        ResourceFamily.storage_optimized: 0.005,
        ResourceFamily.accelerator_optimized: 0.012,
    }


class SimulationParameters(BaseModel):
    """Tunables of the per-zone obtainability / uptime model

    The defaults are hand picked to give plausible looking spot scores, they
    are not calibrated against real preemption data.
    """

    # Typical number of instances of an 8 vCPU shape (1 accelerator for
    # "-<n>g" shapes) a zone's spot pool can absorb
    pool_depth: Dict[ResourceFamily, float] = Field(
        default_factory=_default_pool_depth
    )
    # Relative width of the hash derived zone-to-zone pool depth variation,
    # 0.3 means +/- 15% around the family depth
    pool_depth_jitter: float = Field(default=0.3, ge=0, lt=1)
    minimum_pool_depth: float = Field(default=1.0, gt=0)
    reference_vcpus: float = Field(default=8.0, gt=0)
    reference_accelerators: float = Field(default=1.0, gt=0)

    family_multiplier: Dict[ResourceFamily, float] = Field(
        default_factory=_default_family_multiplier
    )
    generation_multiplier: Dict[Generation, float] = Field(
        default_factory=_default_generation_multiplier
    )

    # Obtainability is the Weibull survival function of the scarcity ratio
    decay_shape: float = Field(default=2.0, gt=0)
    decay_scale: float = Field(default=0.5, gt=0)

    preemption_rate: Dict[ResourceFamily, float] = Field(
        default_factory=_default_preemption_rate
    )
    # How much faster preemptions happen per unit of scarcity ratio
    contention: float = Field(default=40.0, ge=0)
    uptime_window: str = "PT24H"

    model_config = ConfigDict(frozen=True)

    @field_validator("pool_depth", "preemption_rate")
    @classmethod
    def _positive_per_family(cls, value: Dict[ResourceFamily, float]):
        missing = set(ResourceFamily) - set(value)
        if missing:
            raise ValueError(f"missing families {sorted(missing)}")
        for family, v in value.items():
            if v <= 0:
                raise ValueError(f"{family} must be positive, got {v}")
        return value

    @field_validator("family_multiplier", "generation_multiplier")
    @classmethod
    def _at_least_one(cls, value: Dict):
        for key, v in value.items():
            if v < 1:
                raise ValueError(f"{key} multiplier must be >= 1, got {v}")
        return value

    @field_validator("generation_multiplier")
    @classmethod
    def _all_generations(cls, value: Dict[Generation, float]):
        missing = set(Generation) - set(value)
        if missing:
            raise ValueError(f"missing generations {sorted(missing)}")
        return value

    @field_validator("family_multiplier")
    @classmethod
    def _all_families(cls, value: Dict[ResourceFamily, float]):
        missing = set(ResourceFamily) - set(value)
        if missing:
            raise ValueError(f"missing families {sorted(missing)}")
        return value

    @field_validator("uptime_window")
    @classmethod
    def _iso_duration(cls, value: str) -> str:
        try:
            window = isodate.parse_duration(value)
        except isodate.ISO8601Error as exp:
            raise ValueError(f"uptime_window={value} is not ISO 8601") from exp
        if not isinstance(window, timedelta):
            raise ValueError(
                f"uptime_window={value} must not use calendar years or months"
            )
        if window.total_seconds() <= 0:
            raise ValueError(f"uptime_window={value} must be positive")
        return value

    @property
    def uptime_window_hours(self) -> float:
        return isodate.parse_duration(self.uptime_window).total_seconds() / 3600
