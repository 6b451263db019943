#!/usr/bin/env python3
"""Setup script for the Jira issue client.
"""

from setuptools import find_packages, setup

# Read requirements from requirements.txt file
with open("requirements.txt") as f:
    requirements = f.read().splitlines()

# Remove any comments or blank lines from requirements
requirements = [line for line in requirements if line and not line.startswith("#")]

setup(
    name="jira-issues",
    version="0.1.0",
    description="Jira issue client with backlog ranking",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    python_requires=">=3.12,<4.0",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=7.4.0"],
    },
    license="MIT",  # SPDX license identifier
    entry_points={
        "console_scripts": [
            "jira-issues=jira_issues.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
