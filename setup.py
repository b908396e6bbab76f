# setup.py
"""Setup script for the n8n Workflow Converter."""

from setuptools import setup, find_packages

setup(
    name="n8n-workflow-converter",
    version="1.0.0",
    description="Convert n8n workflow JSON into standalone Python projects",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "click>=8.0",
        "pyyaml>=6.0",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "jinja2>=3.0",
        "structlog>=21.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=23.0",
            "flake8>=6.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "n8n-convert=cli.main:cli",
        ],
    },
    python_requires=">=3.9",
)
