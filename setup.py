# setup.py
from setuptools import setup, find_packages

setup(
    name="civic_scout",
    version="0.1.0",
    description="Async civic-data crawler and extractor for council websites",
    packages=find_packages(exclude=("tests", "tests.*")),
    package_data={"civic_scout": ["templates/*.j2"]},
    include_package_data=True,
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "jinja2>=3.1",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "civic-scout=civic_scout.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
