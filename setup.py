"""
Setup script for the talent-match project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_packages

setup(
    name="talent-match",
    version="0.3.0",
    packages=find_packages(include=["talent_match", "talent_match.*", "match_service", "match_service.*"]),
    py_modules=["version"],
    python_requires=">=3.11",
    install_requires=[
        "python-dotenv>=1.0",
        "pydantic>=2.5",
        "pydantic-settings>=2.1",
        "fastapi>=0.110",
        "httpx>=0.27",
        "beautifulsoup4>=4.12",
        "tenacity>=8.2",
        "pymongo>=4.6",
        "json-repair>=0.25",
        "langchain-core>=0.2",
        "langchain-openai>=0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
