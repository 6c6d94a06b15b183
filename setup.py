from setuptools import setup, find_packages

setup(
    name="canvaschat",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*", "demo", "demo.*"]),
    install_requires=[
        "requests>=2.25.0",
        "numpy>=1.21",
        "pypdf>=3.0.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    python_requires=">=3.8",
    zip_safe=False,
)
