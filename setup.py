from setuptools import setup, find_packages

setup(
    name="lms-assessments-backend",
    version="0.1.0",
    description="Assessment attempt lifecycle, grading and course completion service",
    packages=find_packages(include=["lms_backend", "lms_backend.*"]),
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "sqlalchemy[asyncio]>=2.0.25",
        "aiosqlite>=0.19.0",
        "asyncpg>=0.29.0",
        "python-dotenv>=1.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.26.0",
        ],
    },
    python_requires=">=3.10",
)
