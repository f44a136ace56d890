from setuptools import setup, find_packages

setup(
    name="repo-digest",
    version="1.0.0",
    description="Daily digest of CI, pull request and issue activity across your GitHub repositories",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.31.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "repo-digest=repo_digest.cli:main",
        ],
    },
)
