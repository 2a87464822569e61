from typing import Tuple

from pydantic import BaseModel
from pydantic import ConfigDict

from spot_capacity_advisor.enum_utils import enum_docstrings
from spot_capacity_advisor.enum_utils import StrEnum
from spot_capacity_advisor.interface import CapacityAdvisorResponse

# Obtainability above this is considered worth attempting at all
VIABLE_OBTAINABILITY = 0.4


@enum_docstrings
class RiskLevel(StrEnum):
    """How risky a placement is, banded on its obtainability"""

    critical = "Critical"
    """Below 0.4, the request will most likely not be fulfilled"""

    constrained = "Constrained"
    """Between 0.4 and 0.7, expect partial fulfilment or retries"""

    good = "Good"
    """Between 0.7 and 0.85"""

    optimal = "Optimal"
    """0.85 and above"""


# Upper (exclusive) obtainability bound of each band, checked in order
RISK_BANDS: Tuple[Tuple[float, RiskLevel], ...] = (
    (VIABLE_OBTAINABILITY, RiskLevel.critical),
    (0.7, RiskLevel.constrained),
    (0.85, RiskLevel.good),
)


def risk_level(obtainability: float) -> RiskLevel:
    for upper, level in RISK_BANDS:
        if obtainability < upper:
            return level
    return RiskLevel.optimal


class ResponseSummary(BaseModel):
    options: int = 0
    viable_options: int = 0
    top_obtainability: float = 0.0
    top_uptime: float = 0.0
    top_locations: Tuple[str, ...] = ()
    top_count: int = 0
    top_is_split: bool = False
    risk: RiskLevel = RiskLevel.critical
    model_config = ConfigDict(frozen=True)


def summarize(response: CapacityAdvisorResponse) -> ResponseSummary:
    """Headline numbers of a sorted response, the first option is the best"""
    if not response.recommendations:
        return ResponseSummary()

    top = response.recommendations[0]
    return ResponseSummary(
        options=len(response.recommendations),
        viable_options=sum(
            1
            for r in response.recommendations
            if r.obtainability > VIABLE_OBTAINABILITY
        ),
        top_obtainability=top.obtainability,
        top_uptime=top.uptime,
        top_locations=top.locations,
        top_count=top.total_count,
        top_is_split=top.is_split,
        risk=risk_level(top.obtainability),
    )
