from setuptools import setup, find_packages

setup(
    name="grepedit",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pyyaml",
        "textual",
        "tqdm>=4.60",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "grepedit=grepedit.cli:run",
        ],
    },
    author="Uday Kanth",
    description="Edit grep output and write the changes back to the source files.",
)
