# setup.py
from setuptools import setup, find_packages

setup(
    name="schema-validator",          # the *distribution* name on PyPI
    version="2.6.0",
    packages=find_packages(exclude=("tests", "tests.*")),  # will find schema_validator/
    python_requires=">=3.10",
    install_requires=["pandas"],      # Date casting + the DataFrame type
    extras_require={
        "test": ["pytest"],
    },
    description="Schema-driven validation, casting and sanitisation of Python data",
    author="Your Name",
    license="MIT",
)
