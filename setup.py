import setuptools

setuptools.setup(
    name="rpmresolve",
    version="1",
    description="Verified RPM repository metadata fetching and deterministic dependency resolution",
    packages=[
        "rpmresolve",
        "rpmresolve.repo",
        "rpmresolve.solver",
        "rpmresolve.testutil",
        "rpmresolve.util",
    ],
    license='Apache-2.0',
    python_requires=">=3.8",
    install_requires=[
        "jsonschema",
        "zstandard",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "rpmresolve = rpmresolve.main_cli:rpmresolve_cli"
        ]
    },
)
