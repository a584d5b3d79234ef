import setuptools

with open("README.md", "r") as fh:
    long_description = fh.read()

setuptools.setup(
    name="helm_build_suite",
    version="v0.1.0",
    description="A helm chart build suite: installs helm, lints, packages and publishes charts",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(exclude=["tests", "tests.*"]),
    keywords=["helm chart", "building", "chart repository"],
    install_requires=[
        "configargparse",
        "pyyaml",
        "semver>=3",
        "dependency-injector",
        "GitPython",
        "validators>=0.22",
        "httpx>=0.26",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-mock",
        ],
    },
    entry_points={
        "console_scripts": [
            "hbs=helm_build_suite.__main__:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3.12",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 4 - Beta",
    ],
    python_requires=">=3.11",
)
