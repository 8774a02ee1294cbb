"""
Setup configuration for the visited-link highlighter package.
"""

from setuptools import setup, find_packages

setup(
    name="visited-link-highlighter",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "fastapi>=0.100.0",
        "uvicorn>=0.15.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "loguru>=0.7.0",
        "aiohttp>=3.9.0",
        "beautifulsoup4>=4.12.0",
        "redis>=5.0.1",
        "sqlalchemy[asyncio]>=2.0.0",
        "aiosqlite>=0.19.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.24.0",
            "black>=24.0.0",
            "isort>=5.13.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "visited-links=visited_links.main:main",
        ]
    },
    python_requires=">=3.9",
    description="Marks hyperlinks found in browsing history, ignoring tracking parameters",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
