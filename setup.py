"""
Setup script for SSIS Package Analyzer.
"""
from setuptools import setup, find_packages
import os

# Read the README file
def read_readme():
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "SSIS Package Analyzer - Structural reports for SSIS packages (.dtsx)"

# Read requirements
def read_requirements():
    requirements_path = os.path.join(os.path.dirname(__file__), 'requirements.txt')
    if os.path.exists(requirements_path):
        with open(requirements_path, 'r', encoding='utf-8') as f:
            return [line.strip() for line in f if line.strip() and not line.startswith('#')]
    return []

setup(
    name="ssis-package-analyzer",
    version="1.0.0",
    author="Gurdain Singh Madan",
    author_email="support@example.com",
    description="Analyze SSIS packages (.dtsx): data flows, containers, variables, configurations and dependencies",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["parsing", "analysis"]),
    py_modules=["models", "config", "ssis_analyzer_app"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Database",
    ],
    python_requires=">=3.8",
    install_requires=read_requirements(),
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ssis-analyzer=ssis_analyzer_app:main",
        ],
    },
    keywords="ssis, dtsx, etl, data-engineering, analysis, lineage",
)
