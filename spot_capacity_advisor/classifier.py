"""Family / generation classification of machine shape identifiers

Shapes follow the ``<series>-<tier>-<size>`` convention, for example
``n2-standard-4``, ``e2-medium`` or ``a2-highgpu-1g``. Classification looks
only at the (case-insensitive) series prefix and is total: anything that is
not recognized is a legacy general purpose shape.
"""

import re
from fractions import Fraction
from functools import lru_cache
from typing import Tuple

from spot_capacity_advisor.interface import Architecture
from spot_capacity_advisor.interface import Generation
from spot_capacity_advisor.interface import MachineShape
from spot_capacity_advisor.interface import ResourceFamily

# Checked in order, the first family with a matching prefix wins
FAMILY_PREFIXES: Tuple[Tuple[ResourceFamily, Tuple[str, ...]], ...] = (
    (ResourceFamily.accelerator_optimized, ("a2", "a3", "a4", "g2", "g4")),
    (ResourceFamily.memory_optimized, ("m1", "m2", "m3", "m4", "x4")),
    # c3 / c4 are general purpose, only c2 (and c2d) and the HPC series count
    (ResourceFamily.compute_optimized, ("c2", "h3", "h4d")),
    (ResourceFamily.storage_optimized, ("z3",)),
)

MODERN_PREFIXES: Tuple[str, ...] = ("n4", "c4", "m4", "a4", "h4", "x4", "g4")

ARM_PREFIXES: Tuple[str, ...] = ("t2a", "c4a", "n4a", "c3a")

# Shared-core sizes, expressed as a fraction of a vCPU
SHARED_CORE_SIZES = {
    "micro": Fraction(1, 4),
    "small": Fraction(1, 2),
    "medium": Fraction(1),
}

_ACCELERATOR_SIZE = re.compile(r"^(\d+)g$")


def normalize_shape(name: str) -> str:
    return name.strip().lower()


def machine_series(name: str) -> str:
    """The series of a shape, e.g. ``N2`` for ``n2-standard-4``"""
    return normalize_shape(name).split("-")[0].upper()


def shape_family(name: str) -> ResourceFamily:
    n = normalize_shape(name)
    for family, prefixes in FAMILY_PREFIXES:
        if n.startswith(prefixes):
            return family
    return ResourceFamily.general_purpose


def shape_generation(name: str) -> Generation:
    if normalize_shape(name).startswith(MODERN_PREFIXES):
        return Generation.modern
    return Generation.legacy


def shape_architecture(name: str) -> Architecture:
    if normalize_shape(name).startswith(ARM_PREFIXES):
        return Architecture.arm
    return Architecture.x86


def gcp_size(name: str) -> Tuple[Fraction, bool]:
    """Size of a shape and whether that size counts accelerators

    The size is taken from the last dash separated token that looks like a
    size, so ``n2-highmem-96-metal`` is 96 vCPUs, ``e2-medium`` is 1 vCPU
    and ``a2-highgpu-8g`` is 8 accelerators. Accelerator series named by
    vCPUs, e.g. ``g2-standard-4``, are sized in vCPUs. Shapes without any
    recognizable size count as 1 vCPU.
    """
    for token in reversed(normalize_shape(name).split("-")[1:]):
        if token.isdigit():
            return Fraction(int(token)), False
        accelerators = _ACCELERATOR_SIZE.match(token)
        if accelerators:
            return Fraction(int(accelerators.group(1))), True
        if token in SHARED_CORE_SIZES:
            return SHARED_CORE_SIZES[token], False
    return Fraction(1), False


def normalized_gcp_size(name: str) -> Fraction:
    """Normalizes a shape to vCPUs, or accelerators for ``-<n>g`` shapes"""
    size, _ = gcp_size(name)
    return size


def classify(name: str) -> Tuple[ResourceFamily, Generation]:
    return shape_family(name), shape_generation(name)


@lru_cache(2048)
def classify_shape(name: str) -> MachineShape:
    family, generation = classify(name)
    return MachineShape(
        name=name,
        series=machine_series(name),
        family=family,
        generation=generation,
        architecture=shape_architecture(name),
        size=float(normalized_gcp_size(name)),
    )
