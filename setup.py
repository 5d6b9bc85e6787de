"""
Setup script for the cosmos_ops package.
"""

from setuptools import setup, find_packages

setup(
    name="cosmos_ops",
    version="0.1.0",
    description="Azure Cosmos DB Document Operations Package",
    author="Shubham Singh",
    author_email="shubh2014shiv@gmail.com",
    packages=find_packages(include=["cosmos_ops", "cosmos_ops.*"]),
    install_requires=[
        "azure-cosmos>=4.5.0",
        "azure-core>=1.29.0",
        "pydantic>=2.0.0,<3.0.0",
        "pydantic-settings>=2.0.0",
        "pydantic-yaml>=1.1.0",
        "pyyaml>=6.0",
        "tenacity>=8.0.0",  # For retry logic
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
            "flake8>=6.0.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
)
