from setuptools import setup, find_packages

setup(
    name="walg-archive",
    version="0.1.0",
    description="Archive module client that hands completed WAL segments to the WAL-G daemon over a Unix socket",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "python-dotenv>=1.0.0",
        "typer>=0.9.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "walg-archive=walgarchive.main:walg_archive",
        ],
    },
    python_requires=">=3.10",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
)
