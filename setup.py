from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="authverifier-cli",
    version="1.0.0",
    description="A terminal-native AI-content detector for text and images.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "typer>=0.12.3",
        "rich>=13.7.1",
        "questionary>=2.0.1",
        "numpy>=1.26.0",
        "plotille>=5.0.0",
        "pyfiglet>=1.0.2",
        "anthropic",
        "python-dotenv",
        "Pillow>=10.0.0",
        "requests>=2.31.0",
    ],
    extras_require={
        "test": ["pytest>=7.4"],
    },
    entry_points={
        "console_scripts": [
            "authverifier=authverifier_cli.main:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Environment :: Console",
    ],
    python_requires=">=3.9",
)
