from setuptools import find_packages, setup

setup(
    name="wagerx",
    version="0.1.0",
    packages=find_packages(exclude=("tests", "tests.*")),
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "orjson>=3.9.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "httpx>=0.25.0",
        "xxhash>=3.4.0",
        "python-dotenv>=1.0.0",
        "alembic>=1.13.0",
        "sqlalchemy[asyncio]>=2.0.0",
        "asyncpg>=0.29.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "aiosqlite>=0.19.0",
        ],
    },
    python_requires=">=3.10",
)
