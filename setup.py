from setuptools import setup, find_packages

setup(
    name="segeval",
    version="0.1.0",
    description="Threshold-sweep evaluation of saved segmentation predictions",
    author="TPATH",
    packages=find_packages(include=["segeval", "segeval.*"]),
    install_requires=[
        "torch>=1.11.0",
        "numpy>=1.21.0",
        "pandas>=1.3.0",
        "tqdm>=4.61.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0.0",
        ],
    },
    python_requires=">=3.9",
)
