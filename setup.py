from setuptools import setup, find_packages

setup(
    name = 'incubation',
    version = '0.1.0',
    packages = find_packages(include = ["incubation", "incubation.*"]),
    author = "COVID International Working Group",
    description = "Toolkit for estimating incubation period distributions from doubly interval-censored exposure and symptom onset data.",
    classifiers = [
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
    python_requires = '>=3.9',
    install_requires = [
        "numpy",
        "pandas",
        "scipy",
        "matplotlib",
        "arviz",
        "pymc",
        "statsmodels",
        "requests",
        "seaborn",
    ],
    extras_require = {
        "test": ["pytest"]
    }
)
