import setuptools

setuptools.setup(
    name="spot-capacity-advisor",
    version="0.1.0",
    description=(
        "Deterministic obtainability and uptime modeling for preemptible "
        "(spot) instance placement"
    ),
    python_requires=">=3.10",
    packages=setuptools.find_packages(exclude=("tests*",)),
    install_requires=[
        "pydantic>2.0",
        "scipy",
        "numpy",
        "isodate",
    ],
    extras_require={
        "test": ["pytest", "hypothesis"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    entry_points={
        "console_scripts": [
            "spot-advise = spot_capacity_advisor.tools.advise:main",
        ]
    },
    include_package_data=True,
    package_data={
        "": [
            "topology/regions.json",
        ]
    },
)
