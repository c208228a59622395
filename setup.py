import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()


# Because the package isn't installed yet, we have to execute version.py
# in this unusual way, reading directly from the file
# (see https://packaging.python.org/en/latest/guides/single-sourcing-package-version/).
version = {}
with open("stimseq/version.py", "r") as fp:
    exec(fp.read(), version)


setuptools.setup(
    name="stimseq",
    version=version["stimseq_version"],
    description="Deterministic compilation of stimulus sequences for behavioral experiments",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8.0",
    include_package_data=True,
    package_data={"stimseq": ["schemas/*.json", "schemas/stimuli/*.json"]},
    install_requires=[
        "h5py",
        "importlib_resources",
        "joblib",  # Library used for internal parallelization of for loops
        "jsonpickle",
        "jsonschema",
        "numpy",
        "pandas",
        "progress",
        "scipy",
    ],
    extras_require={
        "dev": [
            "isort",
            "mock",
            "pre-commit",
            "pytest",
        ]
    },
)
