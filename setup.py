# setup.py
from setuptools import setup, find_packages

setup(
    name="site_lens",
    version="0.1.0",
    description="Async same-origin site crawler with a live keyword index",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"site_lens": ["templates/*.j2"]},
    install_requires=[
        "aiohttp>=3.9",
        "beautifulsoup4>=4.12",
        "click>=8.1",
        "Jinja2>=3.1",
        "pydantic>=2.5",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": ["site-lens=site_lens.cli:cli"],
    },
    python_requires=">=3.11",
)
