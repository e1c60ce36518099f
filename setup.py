# setup.py
from setuptools import setup, find_packages

setup(
    name="cashflow",
    version="0.1.0",
    description="A CLI for projecting an account balance from recurring and one-time transactions",
    author="Your Name",
    author_email="you@example.com",
    url="https://github.com/yourusername/cashflow",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=8.0",
        "pyyaml>=5.3",
        "python-dotenv>=0.19",
        "xlsxwriter>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "openpyxl>=3.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "cashflow=cashflow.cli:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
