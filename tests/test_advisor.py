import pytest

from spot_capacity_advisor.advisor import aggregate
from spot_capacity_advisor.advisor import assemble
from spot_capacity_advisor.advisor import parse_strategy
from spot_capacity_advisor.advisor import sort_recommendations
from spot_capacity_advisor.advisor import split_evenly
from spot_capacity_advisor.interface import ConfigurationError
from spot_capacity_advisor.interface import DistributionStrategy
from spot_capacity_advisor.interface import MachineTypeDetails
from spot_capacity_advisor.interface import ProvisioningModel
from spot_capacity_advisor.interface import Recommendation
from spot_capacity_advisor.interface import ZoneMetric

US_CENTRAL1 = ["us-central1-a", "us-central1-b", "us-central1-c", "us-central1-f"]


def _obtainabilities(response):
    return [r.obtainability for r in response.recommendations]


def test_compare_mode_one_option_per_zone():
    response = assemble(
        "us-central1", "e2-medium", 10, DistributionStrategy.any, US_CENTRAL1
    )
    assert len(response.recommendations) == 4
    for rec in response.recommendations:
        assert len(rec.shards) == 1
        assert rec.shards[0].count == 10
        assert rec.shards[0].machine_type == "e2-medium"
        assert rec.shards[0].provisioning_model == ProvisioningModel.spot
    assert sorted(loc for r in response.recommendations for loc in r.locations) == (
        US_CENTRAL1
    )


def test_single_zone_scores_like_any():
    any_zone = assemble("us-central1", "n2-standard-8", 40, "ANY", US_CENTRAL1)
    single = assemble(
        "us-central1", "n2-standard-8", 40, "ANY_SINGLE_ZONE", US_CENTRAL1
    )
    assert any_zone == single


def test_balanced_conserves_count():
    response = assemble(
        "us-central1", "e2-medium", 10, DistributionStrategy.balanced, US_CENTRAL1
    )
    assert len(response.recommendations) == 1
    rec = response.recommendations[0]
    assert rec.locations == tuple(US_CENTRAL1)
    assert [s.count for s in rec.shards] == [3, 3, 2, 2]
    assert rec.total_count == 10
    assert rec.is_split


def test_balanced_beats_any_single_zone():
    for shape, count in (
        ("a2-highgpu-1g", 12),
        ("n4-standard-32", 300),
        ("e2-medium", 1),
    ):
        compare = assemble("us-central1", shape, count, "ANY", US_CENTRAL1)
        balanced = assemble("us-central1", shape, count, "BALANCED", US_CENTRAL1)
        best_single = max(_obtainabilities(compare))
        assert balanced.recommendations[0].obtainability >= best_single


def test_balanced_strictly_better_when_scarce():
    compare = assemble("us-central1", "a2-highgpu-1g", 12, "ANY", US_CENTRAL1)
    balanced = assemble("us-central1", "a2-highgpu-1g", 12, "BALANCED", US_CENTRAL1)
    assert balanced.recommendations[0].obtainability > max(_obtainabilities(compare))


def test_balanced_small_request_has_empty_shards():
    response = assemble("us-central1", "e2-medium", 2, "BALANCED", US_CENTRAL1)
    counts = [s.count for s in response.recommendations[0].shards]
    assert counts == [1, 1, 0, 0]


def test_balanced_single_zone_region():
    response = assemble("single-zone1", "e2-medium", 7, "BALANCED", ["single-zone1-a"])
    compare = assemble("single-zone1", "e2-medium", 7, "ANY", ["single-zone1-a"])
    assert response.recommendations[0].scores == compare.recommendations[0].scores


def test_sorted_by_obtainability():
    response = assemble("us-central1", "a2-highgpu-1g", 8, "ANY", US_CENTRAL1)
    scores = _obtainabilities(response)
    assert scores == sorted(scores, reverse=True)
    # The scarce shape spreads the zones apart
    assert len(set(scores)) == 4


def test_ties_keep_zone_order():
    # Nothing requested, every zone scores a perfect 1
    response = assemble("us-central1", "a2-highgpu-1g", 0, "ANY", US_CENTRAL1)
    assert [r.locations[0] for r in response.recommendations] == US_CENTRAL1
    assert _obtainabilities(response) == [1.0] * 4

    reversed_zones = list(reversed(US_CENTRAL1))
    response = assemble("us-central1", "a2-highgpu-1g", 0, "ANY", reversed_zones)
    assert [r.locations[0] for r in response.recommendations] == reversed_zones


def test_zero_count_balanced():
    response = assemble("us-central1", "e2-medium", 0, "BALANCED", US_CENTRAL1)
    rec = response.recommendations[0]
    assert rec.obtainability == 1.0
    assert rec.uptime == 1.0
    assert [s.count for s in rec.shards] == [0, 0, 0, 0]


@pytest.mark.parametrize("strategy", list(DistributionStrategy))
def test_enormous_count_is_scored_not_raised(strategy):
    count = 10**400
    response = assemble("us-central1", "e2-medium", count, strategy, US_CENTRAL1)
    for rec in response.recommendations:
        assert rec.obtainability == 0.0
        assert rec.uptime == 0.0
        assert rec.total_count == count


def test_aggregate_enormous_counts():
    metrics = [
        ZoneMetric(obtainability=0.5, uptime=0.5),
        ZoneMetric(obtainability=0.0, uptime=0.0),
    ]
    result = aggregate(metrics, [10**400, 10**400])
    assert result.obtainability == pytest.approx(0.25)
    assert result.uptime == pytest.approx(0.25)


def test_deterministic():
    first = assemble("europe-west4", "c4-standard-8", 25, "ANY", ["a", "b", "c"])
    for _ in range(3):
        again = assemble("europe-west4", "c4-standard-8", 25, "ANY", ["a", "b", "c"])
        assert again.model_dump_json() == first.model_dump_json()


def test_empty_zones_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        assemble("us-central1", "e2-medium", 10, "ANY", [])
    with pytest.raises(ConfigurationError):
        assemble("us-central1", "e2-medium", 10, "BALANCED", [])


def test_negative_count_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        assemble("us-central1", "e2-medium", -1, "ANY", US_CENTRAL1)


def test_duplicate_zones_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        assemble("us-central1", "e2-medium", 3, "ANY", ["us-central1-a"] * 2)


@pytest.mark.parametrize("strategy", ["", "SPREAD", "any-zone", None, 3])
def test_unknown_strategy_is_a_configuration_error(strategy):
    with pytest.raises(ConfigurationError):
        assemble("us-central1", "e2-medium", 3, strategy, US_CENTRAL1)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("ANY", DistributionStrategy.any),
        ("any", DistributionStrategy.any),
        (" Balanced ", DistributionStrategy.balanced),
        ("any_single_zone", DistributionStrategy.any_single_zone),
        (DistributionStrategy.balanced, DistributionStrategy.balanced),
    ],
)
def test_parse_strategy(value, expected):
    assert parse_strategy(value) is expected


@pytest.mark.parametrize(
    "total,zones,expected",
    [
        (10, 4, [3, 3, 2, 2]),
        (12, 4, [3, 3, 3, 3]),
        (2, 4, [1, 1, 0, 0]),
        (0, 3, [0, 0, 0]),
        (7, 1, [7]),
        (100, 3, [34, 33, 33]),
    ],
)
def test_split_evenly(total, zones, expected):
    assert split_evenly(total, zones) == expected


def test_split_evenly_needs_zones():
    with pytest.raises(ConfigurationError):
        split_evenly(3, 0)


def test_aggregate_weights_by_count():
    metrics = [
        ZoneMetric(obtainability=0.9, uptime=1.0),
        ZoneMetric(obtainability=0.6, uptime=0.8),
        ZoneMetric(obtainability=0.0, uptime=0.0),
    ]
    result = aggregate(metrics, [2, 1, 0])
    assert result.obtainability == pytest.approx(0.8)
    assert result.uptime == pytest.approx((2 * 1.0 + 0.8) / 3)

    assert aggregate(metrics, [0, 0, 0]) == ZoneMetric(obtainability=1, uptime=1)


def test_sort_is_stable():
    recs = [
        Recommendation.model_validate(
            {
                "scores": [{"name": "obtainability", "value": v}],
                "shards": [
                    {"location": z, "machineType": "e2-medium", "count": 1}
                ],
            }
        )
        for z, v in (("a", 0.5), ("b", 0.9), ("c", 0.5), ("d", 0.9))
    ]
    ordered = sort_recommendations(recs)
    assert [r.locations[0] for r in ordered] == ["b", "d", "a", "c"]


def test_advise_uses_topology(test_advisor):
    response = test_advisor.advise("us-east1", "n2-standard-4", 9, "BALANCED")
    rec = response.recommendations[0]
    assert rec.locations == ("us-east1-b", "us-east1-c", "us-east1-d")
    assert [s.count for s in rec.shards] == [3, 3, 3]

    with pytest.raises(KeyError):
        test_advisor.advise("mars-north1", "n2-standard-4", 9)


def test_machine_details_do_not_change_scores(test_advisor):
    details = MachineTypeDetails(name="n2-standard-4", cores=4, memory_gib=16)
    with_details = test_advisor.assemble(
        "us-central1", "n2-standard-4", 30, "ANY", US_CENTRAL1, machine_details=details
    )
    without = test_advisor.assemble(
        "us-central1", "n2-standard-4", 30, "ANY", US_CENTRAL1
    )
    assert with_details == without


def test_wire_format():
    response = assemble("us-central1", "e2-medium", 10, "BALANCED", US_CENTRAL1)
    payload = response.model_dump()
    rec = payload["recommendations"][0]
    assert [s["name"] for s in rec["scores"]] == ["obtainability", "uptime"]
    assert rec["shards"][0] == {
        "location": "us-central1-a",
        "machineType": "e2-medium",
        "count": 3,
        "provisioningModel": "SPOT",
    }
