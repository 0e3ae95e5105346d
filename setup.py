# setup.py
from setuptools import setup, find_packages

setup(
    name="corolisp",
    version="0.1.0",
    description="Continuation-passing-style transformation engine for Lisp coroutines",
    packages=find_packages(include=["corolisp", "corolisp.*"]),
    python_requires=">=3.10",
    install_requires=[],
    extras_require={
        "test": ["pytest", "hypothesis"],
    },
    zip_safe=False,
)
