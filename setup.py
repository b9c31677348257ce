# setup.py
from setuptools import setup, find_packages

setup(
    name="shard",
    version="0.9.0",
    description="Interactive console engine for C-family code fragments",
    packages=find_packages(include=["shard", "shard.*", "shard_server", "shard_server.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": ["pytest", "hypothesis"],
    },
    entry_points={
        "console_scripts": [
            "shard=shard.__main__:main",
        ],
    },
    zip_safe=False,
)
