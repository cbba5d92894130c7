"""Setup configuration for the language-ban review tool."""

from setuptools import setup, find_packages

setup(
    name="banreview",
    version="0.0.1",
    description="Reviews a subreddit ban list for language-rule bans and reports unban candidates",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.11",
    install_requires=[
        "playwright",
        "beautifulsoup4",
        "langdetect",
        "PyYAML",
        "python-dotenv",
        "prompt_toolkit",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "banreview=banreview.main:main",
        ],
    },
)
