from setuptools import setup, find_packages

setup(
    name="pyFam",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pandas>=2.1",
        "numpy",
        "scipy",
        "tqdm",
        "requests"
    ],
    extras_require={
        "test": ["pytest"]
    },
    description="A package for reading Familias .fam files into pedigrees and marker databases",
    url="https://github.com/ssu19/pyFam"
)
