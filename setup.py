import os

from setuptools import setup, find_packages

with open(os.path.join(os.path.dirname(__file__), "readme.md"), "r") as fh:
    long_description = fh.read()

setup(
    name='bikehire-server',
    version='1.0.0',
    license='MIT',
    description='Session-aware availability and bike allocation for a bicycle rental storefront.',
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires='>=3.9',
    install_requires=[
        'aiohttp',
        'aiohttp-cors',
        'aiobreaker',
        'marshmallow>=3.13,<4',
        'tortoise-orm',
        'sentry-sdk',
        'uvloop',
    ],
    extras_require={
        'tests': [
            'pytest',
            'pytest-aiohttp',
            'pytest-asyncio',
            'faker',
        ],
    },
    entry_points={
        'console_scripts': ['bikehire=bikehire.cli:run'],
    },
)
