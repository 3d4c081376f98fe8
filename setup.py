from setuptools import setup, find_packages

setup(
    name="circuit_lab",
    version="0.1.0",
    packages=find_packages(include=["circuit_lab", "circuit_lab.*"]),
    install_requires=[
        "numpy",
        "networkx",
        "pydantic>=2"
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.9",
)
