# setup.py
from setuptools import setup, find_packages

setup(
    name="site_spider",
    version="0.1.0",
    description="Асинхронный краулер одного домена SiteSpider с хранением результатов в SQLite",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "aiohttp>=3.11",
        "aiosqlite>=0.19",
        "beautifulsoup4>=4.12",
        "lxml>=4.9",
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "click>=8.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "site_spider=site_spider.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
