"""Setup configuration for CaseWarden Discord Bot."""

from setuptools import setup, find_packages

setup(
    name="casewarden",
    version="0.1.0",
    description="A Discord moderation bot with a persistent case history",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"casewarden.localization": ["locales/*.yml"]},
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "py-cord>=2.6",
        "aiosqlite>=0.20",
        "PyYAML>=6.0",
        "python-dotenv>=1.0",
        "prompt_toolkit>=3.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.24",
        ],
    },
    entry_points={
        "console_scripts": [
            "casewarden=casewarden.main:main",
        ],
    },
)
